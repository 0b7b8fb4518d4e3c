from __future__ import annotations

import argparse
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..imports.batch import ImportBatch
from ..imports.reader import ParseError, map_headers, normalize_import, read_import_frame, write_template
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import OnboardingConfig
from ..models.entities import EntityType
from ..models.error_record import PARSE_ERROR, ErrorRecord
from ..models.wizard_state import WizardStep
from ..schema.registry import get_schema
from ..services.commit import CommitOrchestrator
from ..services.progress import ProgressTracker, StepProgressIndicator
from ..services.remote import BulkCreateClient, HttpBulkCreateClient, ServerError
from ..services.summary import build_session_summary, render_summary_fields
from ..services.wizard import WizardStepMachine
from ..session.context import OnboardingSession, ReferenceData

"""Batch onboarding command.

python -m crew_onboarding.cli --managers pm.csv --workers crew.xlsx ...

Runs the wizard without interaction: every entity step gets the files given
for it (steps without files are skipped), the rows go through the import
preview, land in the draft and are committed by next(). The run stops at the
first step that cannot advance.

Exit codes:
- 0: wizard reached complete
- 2: held at a step (validation, duplicates, server errors)
- 1: fatal (config, backend connection, reference data)
"""

EXIT_SUCCESS = 0
EXIT_BLOCKED = 2
EXIT_FATAL = 1

FILE_OPTIONS = {
    EntityType.MANAGERS: "managers",
    EntityType.PROJECTS: "projects",
    EntityType.SUBCONTRACTORS: "subcontractors",
    EntityType.WORKERS: "workers",
}


@contextmanager
def _db_connection(cfg: OnboardingConfig):  # pragma: no cover (thin wrapper; needs a live database)
    """psycopg2 connection for backend.mode=postgres.

    Resolution order:
        1. DATABASE_URL / PGDSN (whole DSN), else config database.dsn
        2. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the config database section for anything still missing
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    try:
        # the client issues BEGIN/COMMIT per bulk-create call
        conn.autocommit = True
        yield conn
    finally:
        conn.close()


@contextmanager
def _backend(cfg: OnboardingConfig) -> Iterator[BulkCreateClient]:
    if cfg.backend.mode == "postgres":
        from ..db.client import PostgresBulkCreateClient

        with _db_connection(cfg) as conn:
            yield PostgresBulkCreateClient(conn, cfg.tables)
        return
    yield HttpBulkCreateClient(
        cfg.backend.base_url or "",
        timeout=cfg.backend.timeout_seconds,
        api_token=cfg.backend.api_token,
        endpoints=cfg.backend.endpoints,
        reference_endpoints=cfg.backend.reference_endpoints,
    )


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m crew_onboarding.cli",
        description="Onboard project managers, projects, subcontractors and workers from import files",
    )
    for option in FILE_OPTIONS.values():
        p.add_argument(f"--{option}", nargs="+", type=Path, default=[], metavar="FILE", help=f"{option} import files")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print mapped headers & first rows then exit")
    p.add_argument(
        "--template",
        nargs=2,
        metavar=("ENTITY", "PATH"),
        help="Write an import template (.csv/.xlsx) for ENTITY then exit",
    )
    return p.parse_args(argv)


def _files_by_type(args: argparse.Namespace) -> dict[EntityType, list[Path]]:
    return {t: list(getattr(args, option)) for t, option in FILE_OPTIONS.items()}


def _write_template(option: list[str], logger) -> int:
    entity, path = option
    try:
        entity_type = EntityType(entity)
    except ValueError:
        logger.error(f"template: unknown entity {entity!r} (choose from {', '.join(FILE_OPTIONS.values())})")
        return EXIT_FATAL
    try:
        out = write_template(entity_type, Path(path))
    except (ValueError, OSError) as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"template written: {out}")
    return EXIT_SUCCESS


def _inspect_data(cfg: OnboardingConfig, files: dict[EntityType, list[Path]]) -> int:
    if not any(files.values()):
        print("inspect: no files given")
        return EXIT_SUCCESS
    for entity_type, paths in files.items():
        schema = get_schema(entity_type)
        extra = cfg.imports.header_synonyms.get(entity_type)
        for path in paths:
            print(f"FILE: {path.name} ({entity_type.value})")
            try:
                df = read_import_frame(path.name, path.read_bytes(), delimiter=cfg.imports.delimiter)
                headers = df.iloc[0].tolist() if df.shape[0] else []
                mapping = map_headers(headers, schema, extra)
                rows = normalize_import(df, path.name, schema, extra, cfg.imports.null_sentinels)
            except (ParseError, OSError) as e:
                print(f"  read_error: {e}")
                continue
            columns = {str(headers[i]): name for i, name in mapping.items()}
            print(f"  columns={columns}")
            print("  sample_rows=", [schema.to_payload(r.record) for r in rows[:3]])
    return EXIT_SUCCESS


def _import_step(
    batch: ImportBatch,
    paths: list[Path],
    error_log: ErrorLogBuffer,
    logger,
) -> None:
    entity = batch.entity_type.value
    with ProgressTracker(len(paths), description=f"Reading {entity}") as progress:
        for path in paths:
            progress.start_file(path)
            added = batch.add_path(path)
            progress.finish_file(success=added > 0, rows=added)
            logger.info(f"{entity}: {path.name} rows={added}")

    for failure in batch.failures:
        error_log.append(ErrorRecord.create(failure.file_name, entity, -1, PARSE_ERROR, failure.message))
    for issue in batch.validate().issues:
        logger.error(issue.message if issue.source is None else f"{issue.source}: {issue.message}")
        error_log.append(ErrorRecord.create(issue.source or "<DRAFT>", entity, issue.row, issue.kind, issue.message))


def run_wizard(
    cfg: OnboardingConfig,
    client: BulkCreateClient,
    files: dict[EntityType, list[Path]],
    error_log: ErrorLogBuffer,
    logger,
) -> tuple[int, WizardStepMachine]:
    session = OnboardingSession(ReferenceData.load(client))
    orchestrator = CommitOrchestrator(session, client, error_log=error_log)
    # row issues are logged against their files by _import_step
    machine = WizardStepMachine(session, orchestrator)
    indicator = StepProgressIndicator()

    machine.next()  # intro
    while machine.step is not WizardStep.COMPLETE:
        indicator.show(machine.step)
        entity_type = machine.step.entity_type
        paths = files.get(entity_type, [])
        if not paths:
            logger.info(f"{entity_type.value}: no files, step skipped")
            machine.skip()
            continue

        batch = ImportBatch(entity_type, cfg.imports, known_names=session.known_names())
        _import_step(batch, paths, error_log, logger)
        accepted = batch.accept(session)
        logger.info(f"{entity_type.value}: {accepted} rows in draft")

        result = machine.next()
        if not result.advanced:
            for reason in result.reasons:
                logger.error(f"{entity_type.value}: {reason}")
            logger.warning(f"stopped at step {machine.step.value}")
            return EXIT_BLOCKED, machine
        for warning in session.warnings(entity_type):
            logger.warning(f"{entity_type.value}: {warning}")
    return EXIT_SUCCESS, machine


def main(argv: list[str] | None = None) -> int:
    # None only: an explicit [] must not pick up the test runner's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    if args.template:
        return _write_template(args.template, logger)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    files = _files_by_type(args)
    if args.inspect_data:
        return _inspect_data(cfg, files)

    error_log = ErrorLogBuffer()
    started = time.perf_counter()
    try:
        with _backend(cfg) as client:
            code, machine = run_wizard(cfg, client, files, error_log, logger)
    except ServerError as e:
        logger.error(f"backend: {e}")
        return EXIT_FATAL
    except (psycopg2.Error, OSError) as e:
        logger.error(f"backend ({cfg.backend.mode}): {e}")
        return EXIT_FATAL
    finally:
        log_path = error_log.flush()
        if log_path is not None and error_log.written:
            logger.info(f"error log: {log_path}")

    summary = build_session_summary(
        machine.session,
        machine.orchestrator.history,
        machine.step,
        elapsed_seconds=time.perf_counter() - started,
    )
    log_summary(render_summary_fields(summary))
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
