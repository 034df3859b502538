"""Persistence for gym clients."""

from sqlalchemy import select

from gym_kernel.models.client import Client
from gym_kernel.repositories.base import BaseRepository


class ClientRepository(BaseRepository[Client]):
    model = Client

    def find_by_email(self, email: str) -> Client | None:
        return self.session.execute(
            select(Client).where(Client.email == email.strip().lower())
        ).scalar_one_or_none()

    def list_active(self) -> list[Client]:
        return self.find_by(is_active=True)
