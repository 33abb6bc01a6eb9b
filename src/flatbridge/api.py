"""HTTP API exposing schema discovery, previews and transfers.

Routes:
    POST /schema   tables of the database, or inferred columns of a file
    POST /preview  first rows of a table or a file
    POST /ingest   export a table to a file, or load a file into a table
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from flatbridge import __version__
from flatbridge.config import ConnectionSettings, TransferConfig
from flatbridge.database import DatabaseConnection, DatabaseReader, build_select_query
from flatbridge.errors import TransferError
from flatbridge.flat_file import FlatFileReader, infer_flat_file_schema, validate_delimiter
from flatbridge.transfer import (
    preview_first_rows,
    transfer_database_to_file,
    transfer_file_to_database,
)

log = logging.getLogger(__name__)

ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]
OUTPUT_FILE_NAME = "output.csv"

_TYPE_SUFFIX = re.compile(r"\s*\([^()]*\)\s*$")


class RequestError(Exception):
    """A request that cannot be served as sent."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ── Models ─────────────────────────────────────────────────────────────────


class SourceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str
    clickhouse_config: dict[str, Any] = Field(default_factory=dict, alias="clickHouseConfig")
    flat_file_config: dict[str, Any] = Field(default_factory=dict, alias="flatFileConfig")


class PreviewRequest(SourceRequest):
    table_name: str = Field(default="", alias="tableName")
    columns: list[str] = Field(default_factory=list)


class IngestRequest(SourceRequest):
    selected_columns: list[str] = Field(default_factory=list, alias="selectedColumns")


# ── Helpers ────────────────────────────────────────────────────────────────


def strip_type_suffix(column: str) -> str:
    """Turn a 'name (Type)' column label back into the column name.

    Examples:
        >>> strip_type_suffix("id (UInt64)")
        'id'
    """
    return _TYPE_SUFFIX.sub("", column)


def _connection_url(clickhouse_config: dict[str, Any]) -> str:
    missing = [key for key in ("host", "port", "database", "user") if not clickhouse_config.get(key)]
    if missing:
        raise RequestError(f"Missing required ClickHouse configuration: {', '.join(missing)}")

    try:
        port = int(clickhouse_config["port"])
    except (TypeError, ValueError) as e:
        raise RequestError(f"Invalid ClickHouse port: {clickhouse_config['port']!r}") from e

    password = clickhouse_config.get("jwtToken") or clickhouse_config.get("password") or ""
    settings = ConnectionSettings(
        host=str(clickhouse_config["host"]),
        port=port,
        database=str(clickhouse_config["database"]),
        user=str(clickhouse_config["user"]),
        password=str(password),
    )
    return settings.to_url()


def _qualified_table(clickhouse_config: dict[str, Any], table: str) -> str:
    if "." in table or not clickhouse_config.get("database"):
        return table
    return f"{clickhouse_config['database']}.{table}"


def _delimiter(flat_file_config: dict[str, Any], config: TransferConfig) -> str:
    try:
        return validate_delimiter(flat_file_config.get("delimiter") or config.delimiter)
    except ValueError as e:
        raise RequestError(str(e)) from e


def _source_file(flat_file_config: dict[str, Any], config: TransferConfig) -> Path:
    file_name = flat_file_config.get("fileName")
    if not file_name:
        raise RequestError("File name is required")
    path = config.paths.resolve_source(str(file_name))
    if not path.is_file():
        raise RequestError(f"File does not exist: {file_name}")
    return path


# ── App ────────────────────────────────────────────────────────────────────


def create_app(
    config: TransferConfig | None = None,
    connect: Callable[[str], DatabaseConnection] = DatabaseConnection,
) -> FastAPI:
    """Create the HTTP application.

    Args:
        config: Settings for file locations, delimiter and preview size
        connect: Factory returning a DatabaseConnection for a URL

    Returns:
        FastAPI application
    """
    settings = config or TransferConfig()

    app = FastAPI(title="flatbridge", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(RequestError)
    async def handle_request_error(request: Request, exc: RequestError) -> JSONResponse:
        log.warning("Rejected %s: %s", request.url.path, exc.message)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        log.warning("Invalid request body for %s: %s", request.url.path, exc.errors())
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    @app.exception_handler(TransferError)
    async def handle_transfer_error(request: Request, exc: TransferError) -> JSONResponse:
        log.error("Request to %s failed: [%s] %s", request.url.path, exc.kind, exc)
        return JSONResponse({"error": str(exc), "kind": exc.kind}, status_code=500)

    # ── Routes ──────────────────────────────────────────────────────────────

    @app.post("/schema")
    def schema(body: SourceRequest) -> Any:
        """Tables of the database, or the inferred columns of a file."""
        log.info("Fetching schema for source: %s", body.source)

        if body.source == "ClickHouse":
            url = _connection_url(body.clickhouse_config)
            with connect(url) as db:
                tables = db.list_tables()
            log.info("Found %d tables", len(tables))
            return [table.to_dict() for table in tables]

        if body.source == "FlatFile":
            path = _source_file(body.flat_file_config, settings)
            columns = infer_flat_file_schema(path, _delimiter(body.flat_file_config, settings))
            return [col.to_dict() for col in columns]

        raise RequestError(f"Invalid source: {body.source}")

    @app.post("/preview")
    def preview(body: PreviewRequest) -> Any:
        """First rows of a table or a file, keyed by the requested column labels."""
        log.info("Previewing data for source: %s", body.source)
        labels = {strip_type_suffix(col): col for col in body.columns}

        if body.source == "ClickHouse":
            if not body.table_name:
                raise RequestError("Table name is required")
            if not body.columns:
                raise RequestError("No columns selected")

            url = _connection_url(body.clickhouse_config)
            query = build_select_query(
                _qualified_table(body.clickhouse_config, body.table_name),
                list(labels),
                limit=settings.preview_limit,
            )
            with connect(url) as db:
                result = preview_first_rows(DatabaseReader(db, query), settings.preview_limit)

        elif body.source == "FlatFile":
            path = _source_file(body.flat_file_config, settings)
            reader = FlatFileReader(
                path, _delimiter(body.flat_file_config, settings), infer_types=True
            )
            result = preview_first_rows(reader, settings.preview_limit)

        else:
            raise RequestError(f"Invalid source: {body.source}")

        records = result.to_records()
        if labels:
            records = [
                {labels[name]: value for name, value in record.items() if name in labels}
                for record in records
            ]
        return records

    @app.post("/ingest")
    def ingest(body: IngestRequest) -> Any:
        """Run a transfer in the direction named by ``source``."""
        log.info("Starting ingestion from source: %s", body.source)
        source = body.source.lower()

        if source == "clickhouse":
            table = body.clickhouse_config.get("table")
            if not table:
                raise RequestError("Table name is required")
            if not body.selected_columns:
                raise RequestError("No columns selected")

            url = _connection_url(body.clickhouse_config)
            query = build_select_query(
                _qualified_table(body.clickhouse_config, str(table)),
                [strip_type_suffix(col) for col in body.selected_columns],
            )
            output_file = settings.paths.ensure_output_dir() / OUTPUT_FILE_NAME
            with connect(url) as db:
                result = transfer_database_to_file(
                    db, query, output_file, _delimiter(body.flat_file_config, settings)
                )
            response: dict[str, Any] = {"outputFile": str(output_file)}

        elif source == "flatfile":
            table = body.clickhouse_config.get("table")
            if not table:
                raise RequestError("Table name is required")

            url = _connection_url(body.clickhouse_config)
            path = _source_file(body.flat_file_config, settings)
            with connect(url) as db:
                result = transfer_file_to_database(
                    db,
                    path,
                    _delimiter(body.flat_file_config, settings),
                    _qualified_table(body.clickhouse_config, str(table)),
                )
            response = {"table": str(table)}

        else:
            raise RequestError(f"Invalid source: {body.source}")

        if result.error is not None:
            return JSONResponse(
                {**result.to_dict(), "error": f"Failed to ingest data: {result.error}"},
                status_code=500,
            )

        log.info("Ingestion complete: %d records", result.record_count)
        return {"status": "success", "recordCount": result.record_count, **response}

    return app
