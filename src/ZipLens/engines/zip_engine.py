"""ZIP archive engine backed by the standard-library zipfile module."""

from __future__ import annotations

import logging
import zipfile
import zlib

from ZipLens.engines.base import ArchiveEngine, ArchiveReadError, BadPasswordError
from ZipLens.models import ArchiveEntry

logger = logging.getLogger(__name__)

# General purpose bit flag 0: entry is encrypted
_FLAG_ENCRYPTED = 0x1
_READ_CHUNK = 64 * 1024


def is_encrypted(info: zipfile.ZipInfo) -> bool:
    return bool(info.flag_bits & _FLAG_ENCRYPTED)


class ZipEngine(ArchiveEngine):
    """Lists ZIP archives, verifying passwords against encrypted members."""

    def list_contents(
        self, archive_path: str, password: str | None = None
    ) -> list[ArchiveEntry]:
        logger.info("Listing contents of %s", archive_path)
        try:
            with zipfile.ZipFile(archive_path) as zf:
                infos = zf.infolist()
                if password is None:
                    return [self._entry(info, is_encrypted(info)) for info in infos]

                pwd = password.encode("utf-8")
                locked = [i for i in infos if is_encrypted(i) and not i.is_dir()]
                # The header check passes about 1 in 256 wrong passwords; a full
                # read of the smallest member makes the CRC catch the rest.
                smallest = min(locked, key=lambda i: i.file_size, default=None)
                for info in locked:
                    self._check_password(zf, info, pwd, read_all=info is smallest)
                return [self._entry(info, False) for info in infos]
        except FileNotFoundError as exc:
            raise ArchiveReadError(f"Failed to open ZIP file: {exc}") from exc
        except zipfile.BadZipFile as exc:
            raise ArchiveReadError(f"Failed to parse ZIP file: {exc}") from exc
        except OSError as exc:
            raise ArchiveReadError(f"Failed to open ZIP file: {exc}") from exc

    @staticmethod
    def _entry(info: zipfile.ZipInfo, encrypted: bool) -> ArchiveEntry:
        return ArchiveEntry(
            path=info.filename,
            encrypted=encrypted,
            size=info.file_size,
            is_dir=info.is_dir(),
        )

    @staticmethod
    def _check_password(
        zf: zipfile.ZipFile, info: zipfile.ZipInfo, pwd: bytes, read_all: bool = False
    ) -> None:
        try:
            with zf.open(info, pwd=pwd) as fh:
                while read_all and fh.read(_READ_CHUNK):
                    pass
        except RuntimeError as exc:
            raise BadPasswordError(f"Invalid password: {exc}") from exc
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            # Garbage from a wrong key fails decompression or the CRC
            raise BadPasswordError(f"Invalid password: {exc}") from exc
        except NotImplementedError as exc:
            raise ArchiveReadError(
                f"Unsupported encryption or compression in {info.filename}: {exc}"
            ) from exc
