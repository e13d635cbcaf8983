from __future__ import annotations

import os
from logging.config import fileConfig

from alembic.operations import ops
from sqlalchemy import engine_from_config, pool

from alembic import context
from school_results.core.config import settings
from school_results.core.db import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Result rows are the school's record of marks; never autogenerate their removal.
PROTECTED_TABLES = {"results", "result_locks", "assessments", "activities"}


def _drops_protected_table(migration_ops: ops.MigrateOperation) -> str | None:
    if isinstance(migration_ops, ops.DropTableOp) and migration_ops.table_name in PROTECTED_TABLES:
        return migration_ops.table_name
    if isinstance(migration_ops, ops.DropColumnOp) and migration_ops.table_name in PROTECTED_TABLES:
        return f"{migration_ops.table_name}.{migration_ops.column_name}"

    for op in getattr(migration_ops, "ops", None) or []:
        found = _drops_protected_table(op)
        if found:
            return found
    return None


def _guard_result_tables(_context: context.MigrationContext, _revision, directives) -> None:
    if os.environ.get("ALLOW_RESULT_TABLE_DROPS") == "1" or not directives:
        return

    upgrade_ops = getattr(directives[0], "upgrade_ops", None)
    if upgrade_ops is None:
        return

    target = _drops_protected_table(upgrade_ops)
    if target:
        raise SystemExit(
            f"Refusing to autogenerate a revision that drops {target}. "
            "Set ALLOW_RESULT_TABLE_DROPS=1 if the drop is intended."
        )


def _configure_kwargs(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "process_revision_directives": _guard_result_tables,
        # SQLite needs batch mode for ALTER TABLE
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = settings.DATABASE_URL
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = settings.DATABASE_URL
    config.set_main_option("sqlalchemy.url", url)
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
