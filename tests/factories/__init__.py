"""Test factories for generating test data.

    from tests.factories import TenantFactory, CustomerFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.customer import CustomerFactory
from tests.factories.execution import ExecutionFactory
from tests.factories.tenant import TenantFactory
from tests.factories.workflow import WorkflowFactory

__all__ = [
    "BaseFactory",
    "CustomerFactory",
    "ExecutionFactory",
    "TenantFactory",
    "WorkflowFactory",
    "generate_uuid",
    "utc_now",
]
