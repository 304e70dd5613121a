"""Model exports.

Import from here: `from src.drip.models import AutomationExecution, Customer`
"""

from src.drip.models.automation_log import AutomationLog
from src.drip.models.customer import Customer
from src.drip.models.enums import ExecutionStatus, LogLevel, TriggerType
from src.drip.models.execution import AutomationExecution
from src.drip.models.tenant import Tenant
from src.drip.models.workflow import AutomationWorkflow

__all__ = [
    "AutomationExecution",
    "AutomationLog",
    "AutomationWorkflow",
    "Customer",
    "ExecutionStatus",
    "LogLevel",
    "Tenant",
    "TriggerType",
]
