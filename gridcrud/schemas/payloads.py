from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CreatePayload(BaseModel):
    data: Dict[str, Any]


class UpdatePayload(BaseModel):
    data: Dict[str, Any]
    previous_data: Optional[Dict[str, Any]] = None


class BulkUpdatePayload(BaseModel):
    ids: List[Any]
    updates: Dict[str, Any]


class DeletePayload(BaseModel):
    previous_data: Optional[Dict[str, Any]] = None


class BulkDeletePayload(BaseModel):
    ids: List[Any]


class MessageResponse(BaseModel):
    message: str
