"""
Provides the User model for the application's database schema.

Users are not registered here: identities are issued by an external provider
and a local row is created the first time a verified token is seen.

Attributes
----------
auth_subject : sqlalchemy.Column
    The ``sub`` claim of the identity provider's tokens. Unique.
email : sqlalchemy.Column
    Optional email address of the user, unique when present.
username : sqlalchemy.Column
    The optional username chosen by the user.
is_active : sqlalchemy.Column
    A boolean indicating if the user is active. Defaults to `True`.

Relationships
-------------
chat_conversations : sqlalchemy.orm.relationship
    One-to-many relationship with `ChatConversation`, cascading deletes.
"""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar auth_subject: Subject identifier issued by the identity provider.
    :type auth_subject: str
    :ivar email: Email address of the user.
    :type email: str
    :ivar username: Username of the user. This is optional.
    :type username: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    auth_subject = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    username = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)

    chat_conversations = relationship("ChatConversation", back_populates="user", cascade="all, delete-orphan")
