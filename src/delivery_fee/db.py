# src/delivery_fee/db.py
from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import sessionmaker

from .settings import settings

logger = logging.getLogger(__name__)

_SEEDS_DIR = Path(__file__).resolve().parent / "seeds"

_SEED_SCRIPTS = [
    ("vehicle_types", "reference_data.sql"),
]


def get_sqlalchemy_url(url: str | None = None) -> str:
    url = url or settings.sqlalchemy_url
    # psycopg3 uses 'postgresql+psycopg' instead of 'postgresql+psycopg2'
    if 'postgresql+psycopg2' in url:
        url = url.replace('postgresql+psycopg2', 'postgresql+psycopg')
    elif url.startswith('postgresql://'):
        url = url.replace('postgresql://', 'postgresql+psycopg://')
    return url


def make_engine(url: str | None = None) -> Engine:
    url = get_sqlalchemy_url(url)
    if url.startswith("sqlite"):
        # Sessions are opened from worker threads (see repository)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args={
            "options": "-c statement_timeout=30000",  # 30 second timeout
            # Disable psycopg's automatic server-side prepared statements.
            "prepare_threshold": 0,
        },
    )


engine = make_engine()

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def _script_statements(script: str) -> list[str]:
    statements: list[str] = []
    for raw in script.split(";"):
        stmt = raw.strip()
        if not stmt:
            continue
        upper = stmt.upper()
        if upper in {"BEGIN", "COMMIT"}:
            continue
        statements.append(stmt)
    return statements


def _run_sql_script(bind: Engine, script_path: Path) -> None:
    if not script_path.exists():
        return
    statements = _script_statements(script_path.read_text(encoding="utf-8"))
    if not statements:
        return
    with bind.begin() as conn:
        for statement in statements:
            conn.exec_driver_sql(statement)


def _load_seed_data(bind: Engine) -> None:
    from .models import Base

    for table_name, script_name in _SEED_SCRIPTS:
        table = Base.metadata.tables[table_name]
        with bind.connect() as conn:
            has_rows = conn.execute(select(table).limit(1)).first() is not None
        if has_rows:
            continue
        _run_sql_script(bind, _SEEDS_DIR / script_name)
        logger.info("Loaded seed data for %s from %s", table_name, script_name)


def init_db(bind: Engine | None = None, *, seed: bool | None = None) -> None:
    # Safe if tables already exist
    from .models import Base

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    if settings.seed_reference_data if seed is None else seed:
        _load_seed_data(bind)
