"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
import logging

from config import DATABASE_URL, ADMIN_EMAIL, ADMIN_PASSWORD
from models import Base, Product, UserProfile
from security import hash_password

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pool settings per backend; SQLite is only used for local runs and tests."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(Product).count() == 0:
            products = [
                Product(name="Camiseta Oversized Preta", price=129.90, stock_quantity=40,
                        status="published", images=[]),
                Product(name="Moletom Canguru Cinza", price=289.90, stock_quantity=25,
                        status="published", images=[]),
                Product(name="Boné Dad Hat Bege", price=89.90, stock_quantity=60,
                        status="published", images=[]),
                Product(name="Calça Cargo Verde", price=249.90, stock_quantity=0,
                        status="out_of_stock", images=[]),
            ]
            db.add_all(products)
            db.commit()
            logger.info("Seeded database with sample products")

        if ADMIN_EMAIL and ADMIN_PASSWORD:
            admin = db.query(UserProfile).filter(UserProfile.email == ADMIN_EMAIL).first()
            if admin is None:
                db.add(UserProfile(
                    email=ADMIN_EMAIL,
                    full_name="Administrador",
                    password_hash=hash_password(ADMIN_PASSWORD),
                    is_admin=True
                ))
                db.commit()
                logger.info("Created bootstrap admin account", extra={"email": ADMIN_EMAIL})
    finally:
        db.close()
