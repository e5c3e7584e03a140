# migrations/env.py
from __future__ import annotations

import os
import sys
import logging
from logging.config import fileConfig

from alembic import context

# This file lives at: <backend>/migrations/env.py; make "import backoffice" work
BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

config = context.config

if config.config_file_name:
    try:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    except KeyError:
        # alembic.ini without logging sections
        pass

logger = logging.getLogger("alembic.env")

# -----------------------------------------------------------------------------
# URL + metadata resolution
#
# - Invoked through `flask db ...`: use the app's engine and metadata.
# - Invoked through plain `alembic ...`: DATABASE_URL must be set.
# -----------------------------------------------------------------------------
DB_URL = os.getenv("DATABASE_URL")

USING_FLASK_MIGRATE = False
current_app = None


def _set_sqlalchemy_url(url: str) -> None:
    """Set sqlalchemy.url in alembic config, escaping % for ConfigParser."""
    if url:
        config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))


def _flask_app():
    try:
        from flask import current_app as flask_current_app
        flask_current_app.extensions["migrate"]
    except (RuntimeError, KeyError):
        return None
    return flask_current_app


def get_metadata():
    from backoffice.extensions import db
    from backoffice import models  # noqa: F401  registers tables on db.metadata

    if hasattr(db, "metadatas") and db.metadatas:
        return db.metadatas.get(None) or db.metadata
    return db.metadata


def process_revision_directives(ctx, revision, directives):
    """Skip empty autogenerate revisions."""
    cmd_opts = getattr(config, "cmd_opts", None)
    if cmd_opts and getattr(cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No changes in schema detected.")


current_app = _flask_app()
if current_app is not None:
    USING_FLASK_MIGRATE = True
    _set_sqlalchemy_url(
        current_app.extensions["migrate"].db.engine.url.render_as_string(hide_password=False)
    )
elif DB_URL:
    _set_sqlalchemy_url(DB_URL)


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No sqlalchemy.url configured. Set DATABASE_URL or run through `flask db`.")

    context.configure(
        url=url,
        target_metadata=get_metadata(),
        literal_binds=True,
        compare_type=True,
        process_revision_directives=process_revision_directives,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    if USING_FLASK_MIGRATE:
        conf_args = dict(current_app.extensions["migrate"].configure_args or {})
        conf_args.setdefault("process_revision_directives", process_revision_directives)
        conf_args.setdefault("compare_type", True)
        # SQLite needs batch mode for ALTER TABLE
        conf_args.setdefault("render_as_batch", True)

        connectable = current_app.extensions["migrate"].db.engine
        with connectable.connect() as connection:
            context.configure(connection=connection, target_metadata=get_metadata(), **conf_args)
            with context.begin_transaction():
                context.run_migrations()
        return

    from sqlalchemy import create_engine

    url = config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No sqlalchemy.url configured. Set DATABASE_URL.")

    engine = create_engine(url)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=get_metadata(),
            process_revision_directives=process_revision_directives,
            compare_type=True,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
