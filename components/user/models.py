"""User model for the database."""

from sqlalchemy import Column, Integer, String, Date

from components.core.database import Base


class User(Base):
    """User model representing an agent or administrator."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    login = Column(String(50), unique=True, nullable=False)
    password = Column(String(255), nullable=False)  # Hashed password
    full_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="agent")
    registration_date = Column(Date, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return self.full_name or self.login
