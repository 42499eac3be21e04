from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from pharmadesk.db.base import Base


class User(Base):
    """Staff account. Signs in to record sales and receive stock."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)  # public URL of uploaded profile photo
    created_at = Column(DateTime(timezone=True), server_default=func.now())
