"""
User models and password hashing.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError
from sqlalchemy import insert, select

from ..shared.config import config
from ..shared.errors import PasswordHashingError, translate_db_errors
from .records import (
    Insertable,
    Record,
    check_record_matches_table,
    require_bytes,
    require_str,
)
from .schema import users

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User(Record):
    """
    A row of the ``users`` table.

    ``password_hash`` is a self-describing Argon2 string
    (``$argon2id$v=19$m=...,t=...,p=...$<salt>$<digest>``), never the password.
    """
    __table__ = users

    user_id: int
    username: str
    email: str
    profile_picture: Optional[bytes]
    password_hash: str

    def __repr__(self):
        return f"<User(user_id={self.user_id}, username='{self.username}', email='{self.email}')>"

    def to_dict(self):
        """Convert user to dictionary (without password hash)."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "profile_picture_bytes": len(self.profile_picture) if self.profile_picture is not None else None,
        }

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    @classmethod
    def new(cls, conn, username: str, email: str, password: str) -> "User":
        """Hash ``password`` and insert a new user. See :func:`create_user`."""
        return create_user(conn, username, email, password)


@dataclass(frozen=True)
class NewUser(Insertable):
    """Insert payload for ``users``; the database assigns ``user_id``."""
    __table__ = users

    username: str
    email: str
    profile_picture: Optional[bytes]
    password_hash: str

    def __post_init__(self):
        require_str("username", self.username)
        require_str("email", self.email)
        require_bytes("profile_picture", self.profile_picture, optional=True)
        require_str("password_hash", self.password_hash)

    def __repr__(self):
        return f"<NewUser(username='{self.username}', email='{self.email}')>"


check_record_matches_table(User, users, NewUser)


def _password_hasher() -> PasswordHasher:
    return PasswordHasher(
        time_cost=config.ARGON2_TIME_COST,
        memory_cost=config.ARGON2_MEMORY_COST,
        parallelism=config.ARGON2_PARALLELISM,
    )


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id with a fresh random salt.

    Args:
        password: Plain text password.

    Returns:
        Encoded hash string carrying algorithm, parameters, salt and digest.

    Raises:
        PasswordHashingError: If the hash cannot be computed.
    """
    try:
        return _password_hasher().hash(password)
    except HashingError as e:
        raise PasswordHashingError(f"Password hashing failed: {e}", "hash_password") from e


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        password: Plain text password.
        password_hash: Hashed password from database.

    Returns:
        True if password matches, False otherwise (including malformed hashes).
    """
    try:
        return _password_hasher().verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """True if the hash was made with different Argon2 parameters than configured."""
    try:
        return _password_hasher().check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def insert_user(conn, new_user: NewUser) -> User:
    """
    Insert a user row and return it with its assigned ``user_id``.

    Raises:
        ConstraintViolationError: On constraint violations.
        ConnectivityError: If the database is unreachable.
    """
    stmt = insert(users).values(**new_user.to_row()).returning(*users.c)
    with translate_db_errors("insert_user"):
        row = conn.execute(stmt).one()
    user = User.from_row(row)
    logger.info("Created user %s (%s)", user.user_id, user.username)
    return user


def create_user(conn, username: str, email: str, password: str) -> User:
    """
    Create a new user.

    Args:
        conn: Open SQLAlchemy connection; the caller owns the transaction.
        username: Username.
        email: User email.
        password: Plain text password, hashed before it reaches the database.

    Returns:
        Created User with ``profile_picture`` unset.

    Raises:
        PasswordHashingError: If hashing fails.
        InvalidInputError: If a field has the wrong type. Checked before any hashing work.
        ConstraintViolationError, ConnectivityError, SchemaMismatchError: Database errors.
    """
    require_str("username", username)
    require_str("email", email)
    require_str("password", password)
    password_hash = hash_password(password)
    new_user = NewUser(
        username=username,
        email=email,
        profile_picture=None,
        password_hash=password_hash,
    )
    return insert_user(conn, new_user)


def _get_user_by(conn, column, value, operation) -> Optional[User]:
    stmt = select(users).where(column == value).order_by(users.c.user_id).limit(1)
    with translate_db_errors(operation):
        row = conn.execute(stmt).first()
    return User.from_row(row) if row is not None else None


def get_user_by_id(conn, user_id: int) -> Optional[User]:
    """Get user by ID, or None."""
    return _get_user_by(conn, users.c.user_id, user_id, "get_user_by_id")


def get_user_by_username(conn, username: str) -> Optional[User]:
    """
    Get user by username, or None.

    Usernames are not constrained to be unique; the earliest row wins.
    """
    return _get_user_by(conn, users.c.username, username, "get_user_by_username")


def get_user_by_email(conn, email: str) -> Optional[User]:
    """Get user by email, or None. The earliest row wins."""
    return _get_user_by(conn, users.c.email, email, "get_user_by_email")
