from models.base_model import Base, BaseModel, as_utc, utcnow
from models.user import User
from models.refresh_token import RefreshToken
from models.db_storage import DBStorage

__all__ = ["Base", "BaseModel", "DBStorage", "RefreshToken", "User", "as_utc", "utcnow"]
