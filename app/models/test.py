"""
Test model - read-only view of the authored test bank
"""
from sqlalchemy import Column, String, TIMESTAMP, Text
from sqlalchemy import Uuid
from datetime import datetime, timezone
from app.database import Base, JSONType
import uuid


class Test(Base):
    """
    Tests table - owned by the authoring service, only read here

    ``questions`` holds the ordered question list with correctness data.
    """
    __tablename__ = "tests"
    __test__ = False  # not a pytest class

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    category = Column(String(100), default="General")
    description = Column(Text)
    level = Column(String(50), index=True)
    unit = Column(String(50), index=True)
    questions = Column(JSONType, nullable=False, default=list)
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Test(id={self.id}, title={self.title})>"
