# Orchestration module for VM provisioning, reconciliation and lifecycle
from .configurator import ComponentConfigurator
from .lifecycle import UpdatePlan, VMLifecycle
from .provisioner import PlannedCall, Provisioner
from .reconciler import Reconciler, detect_drift

__all__ = [
    "ComponentConfigurator",
    "PlannedCall",
    "Provisioner",
    "Reconciler",
    "UpdatePlan",
    "VMLifecycle",
    "detect_drift",
]
