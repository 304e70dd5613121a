from src.drip.repositories.automation_log_repository import AutomationLogRepository
from src.drip.repositories.customer_repository import CustomerRepository
from src.drip.repositories.execution_repository import ExecutionRepository
from src.drip.repositories.tenant_repository import TenantRepository
from src.drip.repositories.workflow_repository import WorkflowRepository

__all__ = [
    "AutomationLogRepository",
    "CustomerRepository",
    "ExecutionRepository",
    "TenantRepository",
    "WorkflowRepository",
]
