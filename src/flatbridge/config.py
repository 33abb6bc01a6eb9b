"""Configuration file handling for flatbridge."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml

from flatbridge.flat_file import validate_delimiter

DIRECTIONS = ("export", "import")


class ConnectionSettings:
    """ClickHouse connection parameters."""

    def __init__(
        self,
        url: str | None = None,
        host: str = "localhost",
        port: int = 9000,
        database: str = "default",
        user: str = "default",
        password: str = "",
    ) -> None:
        """Initialize connection settings.

        Args:
            url: Full connection URL; takes precedence over the other fields
            host: Server host name
            port: Native protocol port
            database: Default database
            user: User name
            password: Password (or access token)
        """
        self.url = url
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password

    def to_url(self) -> str:
        """Return the connection URL for these settings.

        Examples:
            >>> ConnectionSettings(host="db", user="etl", password="s3cret").to_url()
            'clickhouse://etl:s3cret@db:9000/default'
        """
        if self.url:
            return self.url
        credentials = quote(self.user, safe="")
        if self.password:
            credentials += ":" + quote(self.password, safe="")
        return f"clickhouse://{credentials}@{self.host}:{self.port}/{quote(self.database, safe='')}"


class PathSettings:
    """Directories flat files are read from and written to."""

    def __init__(self, base_dir: Path = Path("."), output_dir: Path = Path("output")) -> None:
        """Initialize path settings.

        Args:
            base_dir: Directory relative source file names resolve against
            output_dir: Directory relative destination file names resolve
                against; relative values are taken from base_dir
        """
        self.base_dir = Path(base_dir)
        output_dir = Path(output_dir)
        self.output_dir = output_dir if output_dir.is_absolute() else self.base_dir / output_dir

    def resolve_source(self, file_name: str | Path) -> Path:
        path = Path(file_name)
        return path if path.is_absolute() else self.base_dir / path

    def resolve_destination(self, file_name: str | Path) -> Path:
        path = Path(file_name)
        return path if path.is_absolute() else self.output_dir / path

    def ensure_output_dir(self) -> Path:
        """Create the output directory if it doesn't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir


class TransferJob:
    """Configuration for a single named transfer."""

    def __init__(
        self,
        name: str,
        direction: str,
        file: str,
        query: str | None = None,
        table: str | None = None,
        delimiter: str | None = None,
    ) -> None:
        """Initialize a transfer job.

        Args:
            name: Name of the job
            direction: 'export' (database to file) or 'import' (file to database)
            file: Flat file name, relative to the base or output directory
            query: Query to export (export jobs)
            table: Destination table (import jobs)
            delimiter: Field delimiter overriding the config default

        Raises:
            ValueError: If the direction is unknown or its required field is missing
        """
        if direction not in DIRECTIONS:
            raise ValueError(
                f"Job '{name}' direction must be one of {', '.join(DIRECTIONS)}, got '{direction}'"
            )
        if direction == "export" and not query:
            raise ValueError(f"Job '{name}' export requires 'query'")
        if direction == "import" and not table:
            raise ValueError(f"Job '{name}' import requires 'table'")

        self.name = name
        self.direction = direction
        self.file = file
        self.query = query
        self.table = table
        self.delimiter = validate_delimiter(delimiter) if delimiter else None


class TransferConfig:
    """Configuration for flatbridge transfers."""

    def __init__(
        self,
        jobs: dict[str, TransferJob] | None = None,
        connection: ConnectionSettings | None = None,
        paths: PathSettings | None = None,
        delimiter: str = ",",
        preview_limit: int = 100,
    ) -> None:
        """Initialize transfer configuration.

        Args:
            jobs: Dictionary of job name to TransferJob
            connection: Database connection settings
            paths: Source and output directories
            delimiter: Default field delimiter
            preview_limit: Default number of rows returned by previews
        """
        self.jobs = jobs or {}
        self.connection = connection or ConnectionSettings()
        self.paths = paths or PathSettings()
        self.delimiter = validate_delimiter(delimiter)
        self.preview_limit = preview_limit

    def get_job(self, name: str) -> TransferJob | None:
        """Get a job by name.

        Args:
            name: Name of the job

        Returns:
            TransferJob if found, None otherwise
        """
        return self.jobs.get(name)

    def delimiter_for(self, job: TransferJob) -> str:
        return job.delimiter or self.delimiter

    @classmethod
    def from_yaml(cls, config_path: Path) -> TransferConfig:
        """Load configuration from a YAML file.

        Relative directories in ``paths`` resolve against the config file's
        directory.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            TransferConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid

        Example YAML structure:
            connection:
              url: clickhouse://default:@localhost:9000/default
              # or host / port / database / user / password
            paths:
              base_dir: data
              output_dir: output
            delimiter: ","
            preview_limit: 100
            jobs:
              export_events:
                direction: export
                query: SELECT id, name FROM events
                file: events.csv
                delimiter: ";"
              load_events:
                direction: import
                file: events.csv
                table: events
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping")

        connection = cls._parse_connection(data.get("connection"))
        paths = cls._parse_paths(data.get("paths"), config_path.parent)

        preview_limit = data.get("preview_limit", 100)
        if not isinstance(preview_limit, int) or isinstance(preview_limit, bool) or preview_limit < 1:
            raise ValueError("preview_limit must be a positive integer")

        jobs_data = data.get("jobs") or {}
        if not isinstance(jobs_data, dict):
            raise ValueError("jobs must be a dictionary")

        jobs = {}
        for job_name, job_data in jobs_data.items():
            jobs[job_name] = cls._parse_job(job_name, job_data)

        return cls(
            jobs=jobs,
            connection=connection,
            paths=paths,
            delimiter=data.get("delimiter") or ",",
            preview_limit=preview_limit,
        )

    @staticmethod
    def _parse_connection(value: Any) -> ConnectionSettings:
        if value is None:
            return ConnectionSettings()
        if not isinstance(value, dict):
            raise ValueError("connection must be a dictionary")

        unknown = set(value) - {"url", "host", "port", "database", "user", "password"}
        if unknown:
            raise ValueError(f"Unknown connection settings: {', '.join(sorted(unknown))}")

        port = value.get("port", 9000)
        try:
            port = int(port)
        except (TypeError, ValueError) as e:
            raise ValueError(f"connection port must be an integer, got {port!r}") from e

        return ConnectionSettings(
            url=value.get("url"),
            host=str(value.get("host", "localhost")),
            port=port,
            database=str(value.get("database", "default")),
            user=str(value.get("user", "default")),
            password=str(value.get("password") or ""),
        )

    @staticmethod
    def _parse_paths(value: Any, config_dir: Path) -> PathSettings:
        if value is None:
            return PathSettings(base_dir=config_dir)
        if not isinstance(value, dict):
            raise ValueError("paths must be a dictionary")

        base_dir = Path(value.get("base_dir", "."))
        if not base_dir.is_absolute():
            base_dir = config_dir / base_dir
        return PathSettings(base_dir=base_dir, output_dir=Path(value.get("output_dir", "output")))

    @staticmethod
    def _parse_job(name: str, job_data: Any) -> TransferJob:
        """Parse a job from configuration data.

        Args:
            name: Name of the job
            job_data: Job configuration dictionary

        Returns:
            TransferJob instance

        Raises:
            ValueError: If job configuration is invalid
        """
        if not isinstance(job_data, dict):
            raise ValueError(f"Job '{name}' must be a dictionary")

        if "direction" not in job_data:
            raise ValueError(f"Job '{name}' missing 'direction'")

        if "file" not in job_data or not job_data["file"]:
            raise ValueError(f"Job '{name}' missing 'file'")

        return TransferJob(
            name=name,
            direction=job_data["direction"],
            file=str(job_data["file"]),
            query=job_data.get("query"),
            table=job_data.get("table"),
            delimiter=job_data.get("delimiter"),
        )
