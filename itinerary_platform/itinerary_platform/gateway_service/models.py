from sqlalchemy import Column, Integer, String

from .db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    # bcrypt modular-crypt string: algorithm, cost and salt are embedded
    password_hash = Column(String, nullable=False)
