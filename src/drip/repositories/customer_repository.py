"""Repository for Customer entity."""

from src.drip.models import Customer
from src.drip.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    model = Customer
