"""
Database connection lifecycle for the gateway.

One ConnectionManager is created per process at startup. It owns the
SQLAlchemy engine (and, when a Cloud SQL instance reference is configured,
the connector that dials the secure tunnel) and is handed down to the
credential store and the readiness probe.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Callable, Optional

from google.cloud.sql.connector import Connector, IPTypes
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import Settings
from .errors import ConfigError, ConnectError

logger = logging.getLogger(__name__)

Base = declarative_base()

DRIVER = "pg8000"


@dataclass
class DatabaseConfig:
    user: str = ""
    password: str = ""
    database_name: str = ""
    host_or_instance_reference: str = ""
    use_private_network: bool = False
    use_secure_tunnel: bool = False
    port: int = 5432
    url: str = ""
    pool_size: int = 5
    max_overflow: int = 2
    connect_attempts: int = 5
    retry_delay: float = 2.0
    connect_timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        return cls(
            user=settings.DB_USER,
            password=settings.DB_PASS,
            database_name=settings.DB_NAME,
            host_or_instance_reference=settings.INSTANCE_CONNECTION_NAME or settings.DB_HOST,
            use_private_network=settings.use_private_ip,
            use_secure_tunnel=bool(settings.INSTANCE_CONNECTION_NAME),
            port=settings.DB_PORT,
            url=settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            connect_attempts=settings.DB_CONNECT_ATTEMPTS,
            retry_delay=settings.DB_CONNECT_RETRY_DELAY,
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
        )

    def validate(self) -> None:
        """
        Raise ConfigError when a required option is missing.

        A full DATABASE_URL replaces the individual options.
        """
        if self.url:
            return
        required = {
            "DB_USER": self.user,
            "DB_PASS": self.password,
            "DB_NAME": self.database_name,
            "INSTANCE_CONNECTION_NAME or DB_HOST": self.host_or_instance_reference,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(f"Missing required database configuration: {', '.join(missing)}")


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "HealthStatus":
        return cls(True)

    @classmethod
    def unhealthy(cls, reason: str) -> "HealthStatus":
        return cls(False, reason)


class ConnectionManager:
    """Owns the process-wide engine and, if used, the Cloud SQL connector."""

    def __init__(self, config: DatabaseConfig, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.engine: Optional[Engine] = None
        self._connector: Optional[Connector] = None
        self._sleep = sleep
        self._probe_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="db-health")

    @classmethod
    def establish(cls, config: DatabaseConfig, sleep: Callable[[float], None] = time.sleep) -> "ConnectionManager":
        """
        Validate config, open the pool and verify connectivity.

        Raises:
            ConfigError: required options are missing (nothing is opened).
            ConnectError: the database did not answer within the retry budget.
        """
        config.validate()
        manager = cls(config, sleep=sleep)
        manager.connect()
        return manager

    def connect(self) -> Engine:
        if self.engine is not None:
            return self.engine

        self.engine = self._build_engine()

        attempts = max(1, self.config.connect_attempts)
        for attempt in range(1, attempts + 1):
            try:
                self._execute_ping()
            except Exception as e:
                logger.warning("Database ping failed (attempt %d/%d): %s", attempt, attempts, e)
                if attempt < attempts:
                    self._sleep(self.config.retry_delay)
                    continue
                self.close()
                raise ConnectError(f"Could not connect to database after {attempts} attempts") from e
            break

        logger.info("Connected to database (%s)", self._describe())
        return self.engine

    def _build_engine(self) -> Engine:
        config = self.config
        pool_options = {
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
            "pool_timeout": 30,
            "pool_recycle": 1800,
            "pool_pre_ping": True,
        }

        if config.url:
            url = make_url(config.url)
            if url.get_backend_name() == "sqlite":
                options = {"connect_args": {"check_same_thread": False}}
                if url.database in (None, "", ":memory:"):
                    options["poolclass"] = StaticPool
                return create_engine(url, **options)
            return create_engine(url, **pool_options)

        if config.use_secure_tunnel:
            ip_type = IPTypes.PRIVATE if config.use_private_network else IPTypes.PUBLIC
            try:
                # Lazy refresh fetches certificates on first dial, not here
                self._connector = Connector(ip_type=ip_type, refresh_strategy="lazy")
            except Exception as e:
                raise ConnectError("Could not create Cloud SQL connector") from e
            return create_engine(f"postgresql+{DRIVER}://", creator=self._dial, **pool_options)

        url = URL.create(
            f"postgresql+{DRIVER}",
            username=config.user,
            password=config.password,
            host=config.host_or_instance_reference,
            port=config.port,
            database=config.database_name,
        )
        # pg8000 waits indefinitely on connect unless given a timeout
        return create_engine(url, connect_args={"timeout": config.connect_timeout}, **pool_options)

    def _dial(self):
        return self._connector.connect(
            self.config.host_or_instance_reference,
            DRIVER,
            user=self.config.user,
            password=self.config.password,
            db=self.config.database_name,
            timeout=self.config.connect_timeout,
        )

    def _execute_ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def _describe(self) -> str:
        if self.config.url:
            return make_url(self.config.url).render_as_string(hide_password=True)
        if self.config.use_secure_tunnel:
            network = "private" if self.config.use_private_network else "public"
            return f"Cloud SQL connector, instance={self.config.host_or_instance_reference}, ip={network}"
        return f"host={self.config.host_or_instance_reference}:{self.config.port}"

    def ping(self, timeout: float) -> HealthStatus:
        """
        Check database connectivity, waiting at most `timeout` seconds.

        The query runs on a worker thread; if it has not finished in time the
        caller gets an unhealthy status and the thread is left to finish.
        """
        if self.engine is None:
            return HealthStatus.unhealthy("not connected")

        future = self._probe_pool.submit(self._execute_ping)
        try:
            future.result(timeout=timeout)
        except FuturesTimeout:
            future.cancel()
            logger.warning("Database health check timed out after %.1fs", timeout)
            return HealthStatus.unhealthy(f"timed out after {timeout}s")
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return HealthStatus.unhealthy(type(e).__name__)
        return HealthStatus.ok()

    def close(self) -> None:
        """Dispose the pool and tear down the tunnel. Safe to call twice."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        if self._connector is not None:
            self._connector.close()
            self._connector = None
        self._probe_pool.shutdown(wait=False, cancel_futures=True)


def init_db(engine: Engine) -> None:
    """
    Create the users table if it does not exist.
    Should be called on application startup.
    """
    try:
        # Import models to ensure they are registered with Base
        from .models import User  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database schema initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
