from sqlalchemy import Column, Integer, String

from app.db.database import Base


class User(Base):
    """Account placeholder. No route reads or writes this table yet."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)

    def __init__(self, username, password):
        self.username = username
        self.password = password
