from sqlalchemy import Column, Integer, String, DateTime
from app.core.db import Base, utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    # DB column "userId", ORM attribute user_id
    user_id = Column("userId", Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # null for accounts created through a federated identity provider
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_USER)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def id(self) -> int:
        return self.user_id

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
