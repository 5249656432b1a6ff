from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from gridcrud.core.config import settings
from gridcrud.core.deadline import Deadline, get_deadline
from gridcrud.db.session import get_db
from gridcrud.resources import USERS
from gridcrud.services.resource_schema import ResourceSchema
from gridcrud.services.resource_service import ResourceService
from gridcrud.services.resource_store import SqlAlchemyResourceStore


def resource_service_dependency(schema: ResourceSchema) -> Callable[..., ResourceService]:
    def _inner(db: Session = Depends(get_db), deadline: Deadline = Depends(get_deadline)) -> ResourceService:
        store = SqlAlchemyResourceStore(db, schema, deadline)
        return ResourceService(store, schema, settings.PAGINATION_MODE)
    return _inner

get_users_service = resource_service_dependency(USERS)
