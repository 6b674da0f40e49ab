from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from firmdesk.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from firmdesk.csvio.layouts import LAYOUTS
from firmdesk.csvio.reader import ImportInputError
from firmdesk.csvio.templates import write_template
from firmdesk.logging.init import log_summary, setup_logging
from firmdesk.models.config_models import AppConfig
from firmdesk.models.import_row import CommitMode
from firmdesk.store.base import DocumentStore, StoreError
from firmdesk.store.memory import MemoryStore
from firmdesk.services.ad_hoc_invoice import AdHocInvoiceRequest, create_ad_hoc_invoice, price_invoice
from firmdesk.services.client_admin import delete_client_cascade
from firmdesk.services.errors import CommitFailedError, InvoiceInputError, ValidationFailedError
from firmdesk.services.orchestrator import run_import, run_validation
from firmdesk.services.summary import render_summary_line

"""CLI entrypoint.

    python -m firmdesk.cli [--debug] [--config PATH] [--seed PATH] <command> ...

Commands: template, validate, import, invoice, delete-client.

Store selection:
- backend "memory" in the config, or DISABLE_DB_CONNECT=1 -> in-process store
  ("mock mode"), optionally preloaded from a YAML seed file
- backend "postgres" -> PostgresDocumentStore; when the connection fails the
  run falls back to mock mode

Exit codes: 0 success, 2 partial (rows ignored or duplicates skipped),
1 fatal (config, unreadable file, snapshot fetch, rejected batch).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _resolve_dsn(cfg: AppConfig) -> str:
    """DSN for the document database.

    Precedence: DATABASE_URL / PGDSN, then the config `dsn`, then individual
    PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE falling back to the
    config values.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _load_seed(path: Path | None) -> dict[str, list[dict[str, Any]]]:
    if path is None:
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"invalid seed file {path}: {e}") from e
    if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
        raise ConfigError(f"invalid seed file {path}: expected collection -> list of documents")
    return data


def _open_store(cfg: AppConfig, seed: Path | None, logger: logging.Logger) -> tuple[DocumentStore, str]:
    """Return (store, mode) where mode is "live" or "mock"."""
    if cfg.backend == "memory" or os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("in-process store -> mock mode")
        return MemoryStore(_load_seed(seed)), "mock"

    from firmdesk.store.postgres import PostgresDocumentStore

    try:
        store = PostgresDocumentStore.connect(_resolve_dsn(cfg))
        store.ensure_schema()
        return store, "live"
    except StoreError as e:
        if os.getenv("SUPPRESS_DB_WARNING") == "1":
            logger.debug(f"DB connection failed (suppressed warn) -> fallback to mock mode: {e}")
        else:
            logger.warning(f"DB connection failed -> fallback to mock mode: {e}")
        return MemoryStore(_load_seed(seed)), "mock"


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values override existing environment variables."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    kinds = sorted(LAYOUTS)
    p = argparse.ArgumentParser(prog="firmdesk", description="Bulk CSV import and billing tools")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (YAML)")
    p.add_argument("--seed", type=Path, default=None, help="YAML documents to preload in mock mode")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write a CSV upload template")
    t.add_argument("kind", choices=kinds)
    t.add_argument("--output", type=Path, default=None)

    v = sub.add_parser("validate", help="Classify an upload without writing")
    v.add_argument("kind", choices=kinds)
    v.add_argument("csv", type=Path)
    v.add_argument("--invalid-rows", type=Path, default=None, help="Write rows with issues to this CSV")

    i = sub.add_parser("import", help="Validate and commit an upload")
    i.add_argument("kind", choices=kinds)
    i.add_argument("csv", type=Path)
    i.add_argument(
        "--mode",
        choices=[m.value for m in CommitMode],
        default=CommitMode.SKIP_DUPLICATES.value,
    )
    i.add_argument("--invalid-rows", type=Path, default=None)

    inv = sub.add_parser("invoice", help="Price (and optionally save) an ad-hoc invoice")
    inv.add_argument("invoice_file", type=Path, help="YAML invoice description")
    inv.add_argument("--save", action="store_true", help="Persist the engagement and invoice")

    d = sub.add_parser("delete-client", help="Delete a client and its engagements")
    d.add_argument("client_id")
    return p.parse_args(argv)


def _invoice(cfg: AppConfig, store: DocumentStore, invoice_file: Path, save: bool, logger: logging.Logger) -> int:
    from firmdesk.models.entities import Firm, TaxRate
    from firmdesk.store.repository import FIRMS, TAX_RATES, Repository

    try:
        data = yaml.safe_load(invoice_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"invoice: cannot read {invoice_file}: {e}")
        return EXIT_FATAL
    if not isinstance(data, dict):
        logger.error(f"invoice: {invoice_file} must contain a mapping")
        return EXIT_FATAL
    try:
        request = AdHocInvoiceRequest.from_mapping(data)
        if save:
            created = create_ad_hoc_invoice(store, request)
            totals = created.totals
            logger.info(f"invoice saved: {created.invoice_number} engagement={created.engagement_id}")
        else:
            request.check()
            firm_doc = store.get(FIRMS, request.firm_id) if request.firm_id else None
            firm = Firm.from_document(firm_doc) if firm_doc else None
            totals = price_invoice(request, firm, Repository(store, TAX_RATES, TaxRate.from_document).list())
    except (InvoiceInputError, CommitFailedError, StoreError) as e:
        logger.error(f"invoice: {e}")
        return EXIT_FATAL
    shown = totals.as_display()
    log_summary(" ".join(f"{k}={v}" for k, v in shown.items()))
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # None reads sys.argv; an explicit [] must not pick up the test runner's argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    if args.command == "template":
        try:
            cfg_marker = load_config(args.config).mandatory_marker if args.config.exists() else "*"
        except ConfigError as e:
            logger.error(f"config: {e}")
            return EXIT_FATAL
        target = write_template(args.kind, args.output, marker=cfg_marker)
        logger.info(f"template written: {target}")
        return EXIT_SUCCESS_ALL

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        store, db_mode = _open_store(cfg, args.seed, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    with store:
        logger.info(f"mode={db_mode} command={args.command}")
        if args.command == "invoice":
            return _invoice(cfg, store, args.invoice_file, args.save, logger)

        if args.command == "delete-client":
            try:
                removed = delete_client_cascade(store, args.client_id)
            except CommitFailedError as e:
                logger.error(f"delete: {e}")
                return EXIT_FATAL
            log_summary(f"deleted client={args.client_id} engagements={removed}")
            return EXIT_SUCCESS_ALL

        try:
            if args.command == "validate":
                result = run_validation(cfg, store, args.kind, args.csv, invalid_rows_path=args.invalid_rows)
            else:
                result = run_import(
                    cfg,
                    store,
                    args.kind,
                    args.csv,
                    CommitMode(args.mode),
                    invalid_rows_path=args.invalid_rows,
                )
        except ImportInputError as e:
            logger.error(f"input: {e}")
            return EXIT_FATAL
        except ValidationFailedError as e:
            logger.error(f"{e}")
            return EXIT_FATAL
        except CommitFailedError as e:
            logger.error(f"{e}")
            return EXIT_FATAL

    # log_summary adds the "SUMMARY " label itself
    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.is_partial:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
