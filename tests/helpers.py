"""File helpers shared by the tests."""

from __future__ import annotations

from pathlib import Path


def create_flat_file(
    file_path: Path, header: list[str], rows: list[list[str]], delimiter: str = ","
) -> Path:
    """Create a delimited file with the given header and rows.

    Args:
        file_path: Path where the file should be created
        header: List of column names
        rows: List of rows, each a list of field strings
        delimiter: Field delimiter

    Returns:
        Path to the created file
    """
    lines = [delimiter.join(header)] + [delimiter.join(row) for row in rows]
    file_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return file_path


def create_config_file(
    file_path: Path, jobs: dict[str, dict[str, str]], **settings: object
) -> Path:
    """Create a YAML config file with the given jobs.

    Args:
        file_path: Path where the config file should be created
        jobs: Dictionary of job name to job fields
        **settings: Extra top-level scalar settings

    Returns:
        Path to the created config file
    """
    config_lines = []
    for key, value in settings.items():
        config_lines.append(f"{key}: '{value}'" if isinstance(value, str) else f"{key}: {value}")

    config_lines.append("jobs:")
    for job_name, fields in jobs.items():
        config_lines.append(f"  {job_name}:")
        for key, value in fields.items():
            config_lines.append(f"    {key}: '{value}'")

    file_path.write_text("\n".join(config_lines) + "\n")
    return file_path
