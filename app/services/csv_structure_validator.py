"""
File-level structure check for inventory CSV uploads.
"""
import csv
import logging
from dataclasses import dataclass, field
from typing import List, TextIO

from app.services.config_service import config_service

logger = logging.getLogger("app.csv_structure")

REQUIRED_HEADERS = ["interne Artikelnummer", "Preis", "Zustand"]
MIN_COLUMNS = 3
ENCODING_CHUNK_CHARS = 64 * 1024


class StructureError(Exception):
    """File shape makes row processing pointless."""


@dataclass
class StructureCheck:
    valid: bool
    errors: List[str] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    headers_valid: bool = False
    encoding_valid: bool = True


def normalize_headers(headers: List[str]) -> List[str]:
    return [h.strip().lstrip("\ufeff").strip() for h in headers]


class StructureValidator:
    """Validates the header row and a sample of data rows before import."""

    def __init__(self, delimiter: str = None, sample_rows: int = None):
        self.delimiter = delimiter or config_service.get_setting("CSV_DELIMITER", ";")
        self.sample_rows = sample_rows or config_service.get_int("CSV_STRUCTURE_SAMPLE_ROWS", 10)

    def validate(self, handle: TextIO) -> StructureCheck:
        """
        Read the header and the first data rows of an open text handle.

        The rest of the file is read through once so a decoding error anywhere
        fails the check. The handle is rewound to where it started, so the
        caller can stream the full file afterwards.

        Args:
            handle: Decoded file handle positioned at the header row

        Returns:
            StructureCheck with every problem found
        """
        start = handle.tell()
        try:
            check = self._check(handle)
            self._check_encoding(handle)
            return check
        except StructureError as e:
            logger.warning(f"CSV structure invalid: {e}")
            return StructureCheck(valid=False, errors=[str(e)])
        except UnicodeDecodeError as e:
            logger.warning(f"CSV file is not valid UTF-8: {e}")
            return StructureCheck(valid=False, errors=["File is not valid UTF-8 text"], encoding_valid=False)
        finally:
            handle.seek(start)

    @staticmethod
    def _check_encoding(handle: TextIO) -> None:
        while handle.read(ENCODING_CHUNK_CHARS):
            pass

    def _check(self, handle: TextIO) -> StructureCheck:
        reader = csv.reader(handle, delimiter=self.delimiter)

        raw_headers = next(reader, None)
        if not raw_headers:
            raise StructureError("CSV file is empty: header row missing")

        headers = normalize_headers(raw_headers)
        errors: List[str] = []

        if len(headers) < MIN_COLUMNS:
            errors.append(
                f"Invalid CSV structure: insufficient columns ({len(headers)} found, at least {MIN_COLUMNS} required)"
            )

        missing = [name for name in REQUIRED_HEADERS if name not in headers]
        if missing:
            errors.append(f"Missing required columns: {', '.join(missing)}")

        headers_valid = not errors

        sampled = 0
        for row in reader:
            if not row:
                continue
            sampled += 1
            if len(row) != len(headers):
                errors.append(
                    f"Row {reader.line_num} has {len(row)} columns, header has {len(headers)}"
                )
            if sampled >= self.sample_rows:
                break

        if not errors:
            logger.info(f"CSV structure validated: {len(headers)} columns, {sampled} rows sampled")

        return StructureCheck(
            valid=not errors,
            errors=errors,
            headers=headers,
            headers_valid=headers_valid,
        )
