"""Database setup and the server-side form session model."""

import logging
from sqlalchemy import create_engine, Column, String, Float, Index
from sqlalchemy.orm import declarative_base, sessionmaker
from fastapi import Request

Base = declarative_base()


class FormSession(Base):
    """Server-side state for one visitor's contact form (CSRF token and render time)."""
    __tablename__ = "contact_form_sessions"

    id = Column(String, primary_key=True)  # opaque value carried in the session cookie
    csrf_token = Column(String, nullable=True)
    csrf_issued_at = Column(Float, nullable=True)  # epoch seconds
    form_rendered_at = Column(Float, nullable=True)  # epoch seconds, used by bot timing check
    created_at = Column(Float, nullable=False)
    last_seen_at = Column(Float, nullable=False)

    __table_args__ = (
        Index('idx_contact_form_sessions_last_seen', 'last_seen_at'),
    )


def create_session_factory(database_url: str) -> sessionmaker:
    """Create an engine for database_url and return a bound session factory."""
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
    }
    if database_url.startswith("sqlite"):
        # FastAPI runs sync dependencies in a threadpool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_recycle"] = 3600  # Recycle connections after 1 hour

    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(session_factory: sessionmaker) -> None:
    """Create the session table if it does not exist."""
    engine = session_factory.kw["bind"]
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logging.info("Contact session tables initialized")


def get_db(request: Request):
    """Dependency to get database session."""
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
