# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from firmdesk.logging.init import reset_logging
from firmdesk.models.config_models import AppConfig, DatabaseConfig
from firmdesk.store.memory import MemoryStore


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """backend: memory
timezone: Asia/Kolkata
logs_directory: ./logs
partner_role: Partner
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "firmdesk.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def app_config(temp_workdir: Path) -> AppConfig:
    return AppConfig(
        backend="memory",
        database=DatabaseConfig(),
        timezone="Asia/Kolkata",
        logs_directory=str(temp_workdir / "logs"),
    )


@pytest.fixture()
def master_data() -> dict[str, list[dict]]:
    return {
        "employees": [
            {"id": "emp-dojo", "name": "Dojo Davis", "email": "dojo@firm.example", "role": ["Partner"]},
            {"id": "emp-meera", "name": "Meera Nair", "email": "meera@firm.example", "role": ["Partner", "Admin"]},
            {"id": "emp-ravi", "name": "Ravi Kumar", "email": "ravi@firm.example", "role": ["Employee"]},
        ],
        "firms": [
            {"id": "firm-dmv", "name": "Davis, Martin & Varghese", "gstn": "32AABFD1234E1Z5", "state": "Kerala"},
            {"id": "firm-nogst", "name": "Small Practice", "gstn": "", "state": "Kerala"},
        ],
        "departments": [
            {"id": "dep-1", "name": "Employee", "order": 1},
            {"id": "dep-2", "name": "Articles", "order": 2},
            {"id": "dep-3", "name": "Partner", "order": 3},
        ],
        "engagementTypes": [
            {"id": "type-gst", "name": "GST Filing", "subTaskTitles": ["Collect invoices", "Reconcile", "File GSTR-3B"], "recurrence": "Monthly"},
            {"id": "type-audit", "name": "Statutory Audit"},
            {"id": "type-itr", "name": "ITR Filing", "recurrence": "Yearly"},
        ],
        "taxRates": [
            {"id": "gst18", "name": "GST 18%", "rate": 18, "isDefault": True},
            {"id": "gst5", "name": "GST 5%", "rate": 5},
            {"id": "exempt", "name": "Exempt", "rate": 0},
        ],
        "clients": [
            {
                "id": "cl-existing",
                "name": "Innovate Inc.",
                "mailId": "accounts@innovate.example",
                "mobileNumber": "9000000100",
                "category": "Corporate",
                "partnerId": "emp-dojo",
                "firmId": "firm-dmv",
                "pan": "AAACI1234K",
                "state": "Kerala",
                "billingAddressLine1": "1 MG Road",
                "createdAt": "2024-01-01T00:00:00.000Z",
            },
        ],
    }


@pytest.fixture()
def store(master_data) -> MemoryStore:
    return MemoryStore(master_data)


def write_csv(path: Path, header: list[str], rows: list[list[str]], footer: str | None = None) -> Path:
    """Write a small upload CSV (values are quoted when they contain commas)."""
    def fmt(v: str) -> str:
        return f'"{v}"' if ("," in v or '"' in v) else v

    lines = [",".join(fmt(h) for h in header)]
    lines += [",".join(fmt(v) for v in r) for r in rows]
    if footer:
        lines += ["", footer]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def csv_writer():
    return write_csv
