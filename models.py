"""SQLAlchemy ORM models for users, portfolios and contact messages."""

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, JSON
)
from sqlalchemy.orm import relationship

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)

    portfolio = relationship("Portfolio", back_populates="owner", uselist=False)


class Portfolio(Base):
    __tablename__ = "portfolios"

    id = Column(Integer, primary_key=True, index=True)
    # one portfolio per user
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    data = Column(JSON, nullable=False)

    owner = relationship("User", back_populates="portfolio")
    messages = relationship("ContactMessage", back_populates="portfolio")


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(String(40), nullable=False)
    portfolio_id = Column(Integer, ForeignKey("portfolios.id"), nullable=True, index=True)

    portfolio = relationship("Portfolio", back_populates="messages")
