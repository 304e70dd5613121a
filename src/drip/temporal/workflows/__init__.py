from src.drip.temporal.workflows.maintenance import ExecutionMaintenanceWorkflow, MaintenanceInput

__all__ = ["ExecutionMaintenanceWorkflow", "MaintenanceInput"]
