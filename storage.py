"""Record storage: one contract, an in-memory backend and a SQLAlchemy backend."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from errors import DuplicateRecord
from models import ContactMessage, Portfolio, User
from schemas import ContactMessageRecord, PortfolioRecord, UserRecord

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Every ``get_*`` returns None when the record is absent.

    ``create_*`` assigns the next id for the record kind and never hands the
    same id out twice.  ``update_portfolio`` replaces ``data`` wholesale and
    returns None for an unknown id.
    """

    # User operations
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        raise NotImplementedError

    @abstractmethod
    def create_user(self, fields: Dict[str, Any]) -> UserRecord:
        raise NotImplementedError

    # Portfolio operations
    @abstractmethod
    def get_portfolio(self, portfolio_id: int) -> Optional[PortfolioRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_portfolio_by_user_id(self, user_id: int) -> Optional[PortfolioRecord]:
        raise NotImplementedError

    @abstractmethod
    def create_portfolio(self, fields: Dict[str, Any]) -> PortfolioRecord:
        raise NotImplementedError

    @abstractmethod
    def update_portfolio(self, portfolio_id: int, data: Dict[str, Any]) -> Optional[PortfolioRecord]:
        raise NotImplementedError

    # Contact message operations
    @abstractmethod
    def create_contact_message(self, fields: Dict[str, Any]) -> ContactMessageRecord:
        raise NotImplementedError

    @abstractmethod
    def get_contact_messages(self, portfolio_id: int) -> List[ContactMessageRecord]:
        raise NotImplementedError


class MemStorage(Storage):
    """Dict-backed store.  A single lock serializes increment-and-insert."""

    def __init__(self):
        self._lock = threading.Lock()
        self._users: Dict[int, UserRecord] = {}
        self._portfolios: Dict[int, PortfolioRecord] = {}
        self._contact_messages: Dict[int, ContactMessageRecord] = {}
        self._next_user_id = 1
        self._next_portfolio_id = 1
        self._next_contact_message_id = 1

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        for user in list(self._users.values()):
            if user.username == username:
                return user.model_copy()
        return None

    def create_user(self, fields: Dict[str, Any]) -> UserRecord:
        with self._lock:
            if any(u.username == fields["username"] for u in self._users.values()):
                raise DuplicateRecord(f"Username {fields['username']!r} already exists")
            user = UserRecord(id=self._next_user_id, username=fields["username"], password=fields["password"])
            self._next_user_id += 1
            self._users[user.id] = user
        return user.model_copy()

    def get_portfolio(self, portfolio_id: int) -> Optional[PortfolioRecord]:
        portfolio = self._portfolios.get(portfolio_id)
        return portfolio.model_copy(deep=True) if portfolio else None

    def get_portfolio_by_user_id(self, user_id: int) -> Optional[PortfolioRecord]:
        for portfolio in list(self._portfolios.values()):
            if portfolio.user_id == user_id:
                return portfolio.model_copy(deep=True)
        return None

    def create_portfolio(self, fields: Dict[str, Any]) -> PortfolioRecord:
        with self._lock:
            if any(p.user_id == fields["user_id"] for p in self._portfolios.values()):
                raise DuplicateRecord(f"User {fields['user_id']} already has a portfolio")
            portfolio = PortfolioRecord(id=self._next_portfolio_id, user_id=fields["user_id"], data=fields["data"])
            self._next_portfolio_id += 1
            self._portfolios[portfolio.id] = portfolio
        return portfolio.model_copy(deep=True)

    def update_portfolio(self, portfolio_id: int, data: Dict[str, Any]) -> Optional[PortfolioRecord]:
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            if portfolio is None:
                return None
            updated = portfolio.model_copy(update={"data": data}, deep=True)
            self._portfolios[portfolio_id] = updated
        return updated.model_copy(deep=True)

    def create_contact_message(self, fields: Dict[str, Any]) -> ContactMessageRecord:
        with self._lock:
            message = ContactMessageRecord(id=self._next_contact_message_id, **fields)
            self._next_contact_message_id += 1
            self._contact_messages[message.id] = message
        return message.model_copy()

    def get_contact_messages(self, portfolio_id: int) -> List[ContactMessageRecord]:
        return [
            m.model_copy()
            for m in list(self._contact_messages.values())
            if m.portfolio_id == portfolio_id
        ]


class SqlStorage(Storage):
    """Relational store.  Each operation runs in its own session."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self._session_factory() as db:
            user = db.query(User).filter(User.username == username).first()
            return UserRecord.model_validate(user) if user else None

    def create_user(self, fields: Dict[str, Any]) -> UserRecord:
        with self._session_factory() as db:
            user = User(username=fields["username"], password=fields["password"])
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise DuplicateRecord(f"Username {fields['username']!r} already exists") from exc
            db.refresh(user)
            return UserRecord.model_validate(user)

    def get_portfolio(self, portfolio_id: int) -> Optional[PortfolioRecord]:
        with self._session_factory() as db:
            portfolio = db.get(Portfolio, portfolio_id)
            return PortfolioRecord.model_validate(portfolio) if portfolio else None

    def get_portfolio_by_user_id(self, user_id: int) -> Optional[PortfolioRecord]:
        with self._session_factory() as db:
            portfolio = db.query(Portfolio).filter(Portfolio.user_id == user_id).first()
            return PortfolioRecord.model_validate(portfolio) if portfolio else None

    def create_portfolio(self, fields: Dict[str, Any]) -> PortfolioRecord:
        with self._session_factory() as db:
            portfolio = Portfolio(user_id=fields["user_id"], data=fields["data"])
            db.add(portfolio)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise DuplicateRecord(f"User {fields['user_id']} already has a portfolio") from exc
            db.refresh(portfolio)
            return PortfolioRecord.model_validate(portfolio)

    def update_portfolio(self, portfolio_id: int, data: Dict[str, Any]) -> Optional[PortfolioRecord]:
        with self._session_factory() as db:
            portfolio = db.get(Portfolio, portfolio_id)
            if portfolio is None:
                return None
            # reassigning the column marks the JSON value dirty
            portfolio.data = data
            db.commit()
            db.refresh(portfolio)
            return PortfolioRecord.model_validate(portfolio)

    def create_contact_message(self, fields: Dict[str, Any]) -> ContactMessageRecord:
        with self._session_factory() as db:
            message = ContactMessage(**fields)
            db.add(message)
            db.commit()
            db.refresh(message)
            return ContactMessageRecord.model_validate(message)

    def get_contact_messages(self, portfolio_id: int) -> List[ContactMessageRecord]:
        with self._session_factory() as db:
            rows = (
                db.query(ContactMessage)
                .filter(ContactMessage.portfolio_id == portfolio_id)
                .order_by(ContactMessage.id)
                .all()
            )
            return [ContactMessageRecord.model_validate(row) for row in rows]
