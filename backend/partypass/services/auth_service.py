"""
Authentication service handling seller registration, login, admin seeding and
self-service profiles.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.config import get_settings
from partypass.core.exceptions import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from partypass.core.logging import get_logger
from partypass.core.security import (
    CredentialFormat,
    create_access_token,
    hash_password,
    load_credential,
)
from partypass.models.user import ROLE_ADMIN, ROLE_SELLER, User
from partypass.schemas.user import ProfileUpdate, SellerRegister, UserLogin

logger = get_logger(__name__)
settings = get_settings()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: SellerRegister) -> User:
    """
    Register a seller account, unapproved until an admin approves it.
    Raises 409 if the email is already registered.
    """
    if len(user_data.password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationFailed(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

    email = user_data.email.lower()
    if await get_user_by_email(db, email):
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise Conflict("Email already in use")

    user = User(
        name=user_data.name,
        email=email,
        password=hash_password(user_data.password),
        credential_format=CredentialFormat.HASHED.value,
        role=ROLE_SELLER,
        ticket_limit=settings.DEFAULT_TICKET_LIMIT,
        tickets_sold=0,
        approved=False,
        suspended=False,
        whatsapp=user_data.whatsapp,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise Conflict("Email already in use")
    await db.refresh(user)

    logger.info("seller_registered", user_id=user.id, email=user.email)
    return user


async def _upgrade_legacy_credential(db: AsyncSession, user: User, password: str) -> None:
    """
    Rewrite a verified LEGACY credential as HASHED.
    Conditioned on the row still being LEGACY, so a concurrent login that
    already upgraded it makes this a no-op.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.credential_format == CredentialFormat.LEGACY.value)
        .values(password=hash_password(password), credential_format=CredentialFormat.HASHED.value)
    )
    await db.commit()
    await db.refresh(user)
    if result.rowcount:
        logger.info("credential_upgraded", user_id=user.id)


def issue_token(user: User) -> str:
    return create_access_token(data={"id": user.id, "role": user.role, "name": user.name})


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, str]:
    """
    Verify credentials and return the user with a signed session token.
    Raises 401 for unknown email or wrong password, 403 for suspended or
    unapproved sellers.
    """
    user = await get_user_by_email(db, login_data.email)
    if not user:
        logger.warning("login_failed", reason="unknown_email", email=login_data.email)
        raise Unauthorized("Invalid credentials")

    credential = load_credential(user.credential_format, user.password)
    if not credential.verify(login_data.password):
        logger.warning("login_failed", reason="bad_password", user_id=user.id)
        raise Unauthorized("Invalid credentials")

    if credential.needs_upgrade:
        await _upgrade_legacy_credential(db, user, login_data.password)

    if user.role == ROLE_SELLER and user.suspended:
        logger.warning("login_rejected", reason="suspended", user_id=user.id)
        raise Forbidden("Seller account suspended")

    if user.role == ROLE_SELLER and not user.approved:
        logger.warning("login_rejected", reason="not_approved", user_id=user.id)
        raise Forbidden("Seller not approved")

    token = issue_token(user)
    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return user, token


async def seed_admin(db: AsyncSession) -> Optional[User]:
    """
    Create the configured admin account if no admin exists yet.
    Safe to run on every startup.
    """
    existing = await db.execute(select(User).where(User.role == ROLE_ADMIN).limit(1))
    if existing.scalar_one_or_none():
        return None

    email = settings.ADMIN_EMAIL.strip().lower()
    if await get_user_by_email(db, email):
        logger.warning("admin_seed_skipped", reason="email_taken", email=email)
        return None

    admin = User(
        name=settings.ADMIN_NAME,
        email=email,
        password=hash_password(settings.ADMIN_PASSWORD),
        credential_format=CredentialFormat.HASHED.value,
        role=ROLE_ADMIN,
        ticket_limit=settings.DEFAULT_TICKET_LIMIT,
        tickets_sold=0,
        approved=True,
        suspended=False,
    )
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        # Another worker seeded concurrently
        await db.rollback()
        return None
    await db.refresh(admin)
    logger.info("admin_seeded", user_id=admin.id, email=admin.email)
    return admin


async def get_profile(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def update_profile(db: AsyncSession, user_id: int, profile: ProfileUpdate) -> User:
    """Apply the provided fields; empty strings clear optional contact fields."""
    user = await get_profile(db, user_id)
    changes = profile.model_dump(exclude_unset=True)

    if "name" in changes:
        if not changes["name"]:
            raise ValidationFailed("Name cannot be empty")
        user.name = changes["name"]
    for field in ("phone", "whatsapp", "avatar_url"):
        if field in changes:
            setattr(user, field, changes[field] or None)

    await db.commit()
    await db.refresh(user)
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user
