from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import make_url

SAFE_INTEGRATION_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "postgres",
        "promo_postgres",
    }
)


@dataclass(frozen=True, slots=True)
class IntegrationDbTarget:
    backend: str
    database_name: str
    host: str

    def refusal_reason(self) -> str | None:
        if self.backend != "postgresql":
            return "Integration tests run only against PostgreSQL."
        if not self.database_name:
            return "Database name is empty."
        if "test" not in self.database_name.lower():
            return "Database name must contain 'test'."
        if self.host not in SAFE_INTEGRATION_HOSTS:
            return f"Host '{self.host}' is not a local integration-test host."
        return None


def describe_integration_db(database_url: str) -> IntegrationDbTarget:
    parsed = make_url(database_url)
    return IntegrationDbTarget(
        backend=parsed.get_backend_name(),
        database_name=(parsed.database or "").strip(),
        host=(parsed.host or "").strip().lower(),
    )


def assert_safe_integration_db(database_url: str) -> None:
    target = describe_integration_db(database_url)
    reason = target.refusal_reason()
    if reason is None:
        return

    raise RuntimeError(
        "Refusing to truncate tables outside a dedicated test database. "
        f"{reason} (database='{target.database_name}', host='{target.host}'). "
        "Point DATABASE_URL at a local database such as 'promo_redemption_test'."
    )
