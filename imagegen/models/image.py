"""ORM model for generated images saved to a user's history."""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from imagegen.models.base import Base


class Image(Base):
    """One generated image (or a prompt-only record when the service returned no URL)."""

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=True)
    prompt = Column(Text, nullable=False)
    model = Column(String(100), nullable=True)
    url = Column(String(500), nullable=False, default="")
    thumbnail = Column(String(500), nullable=False, default="")
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    size = Column(BigInteger, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    user = relationship("User", back_populates="images")
