from gridcrud.models.user import User
from gridcrud.services.resource_schema import ResourceSchema

USERS = ResourceSchema.from_model(User, name="users")
