"""
Certificate Locator

Finds the PKCS#12 bundle for a certificate thumbprint, first on disk at
well-known locations and then by exporting it from the platform certificate
store into a temporary file that is removed before the call returns.
"""

import logging
import os
import re
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, List, Optional

from ..errors import CertificateAcquisitionError, CertificateStoreError
from .certificate_store import DEFAULT_SUBJECT_PATTERN, CertificateStore, default_certificate_store

DEFAULT_CERT_NAME = "SharePoint-Server-MCP-Cert"
CWD_CERT_FILENAMES = (f"{DEFAULT_CERT_NAME}.pfx", "certificate.pfx")


@dataclass
class CertificateMaterial:
    """Raw PKCS#12 bytes and their password; lives only as long as a signing call."""

    data: bytes = field(repr=False)
    password: str = field(repr=False)
    source: str = ""

    def release(self) -> None:
        self.data = b""
        self.password = ""


def _documents_dir() -> Path:
    return Path(os.environ.get("USERPROFILE") or Path.home()) / "Documents"


class CertificateLocator:
    """Locate certificate material for the certificate credential provider."""

    def __init__(
        self,
        store: Optional[CertificateStore] = None,
        cwd: Optional[Path] = None,
        documents_dir: Optional[Path] = None,
        temp_dir: Optional[Path] = None,
        subject_pattern: str = DEFAULT_SUBJECT_PATTERN,
    ):
        self.store = store or default_certificate_store()
        self.cwd = cwd
        self.documents_dir = documents_dir
        self.temp_dir = temp_dir
        self.subject_pattern = subject_pattern
        self.logger = logging.getLogger("sharepoint.auth.certificate_locator")

    def candidate_paths(self, thumbprint: str) -> List[Path]:
        """Filesystem locations in strict priority order."""
        cwd = self.cwd or Path.cwd()
        documents = self.documents_dir or _documents_dir()
        thumbprint = thumbprint.strip()

        paths = [
            cwd / f"{thumbprint}.pfx",
            documents / f"{thumbprint}.pfx",
            documents / f"{DEFAULT_CERT_NAME}.pfx",
        ]
        paths.extend(cwd / name for name in CWD_CERT_FILENAMES)
        return paths

    def find_file(self, thumbprint: str) -> Optional[Path]:
        """Return the first existing candidate file, or None."""
        for path in self.candidate_paths(thumbprint):
            self.logger.debug(f"Looking for certificate at: {path}")
            if path.is_file():
                self.logger.info(f"Certificate found at: {path}")
                return path
        return None

    async def load(self, thumbprint: str, password: str) -> CertificateMaterial:
        """Read the certificate bundle from disk or the certificate store.

        Raises:
            CertificateAcquisitionError: neither the files nor the store produced a bundle.
        """
        path = self.find_file(thumbprint)
        if path is not None:
            try:
                data = path.read_bytes()
            except OSError as e:
                self.logger.error(f"Could not read certificate file {path}: {e}")
                raise CertificateAcquisitionError(
                    [str(path)], reason=f"Certificate file {path} could not be read ({e.strerror or e})"
                ) from e
            return CertificateMaterial(data=data, password=password, source=str(path))

        self.logger.info("Certificate not found in file system, trying the certificate store")
        try:
            data = await self._export_from_store(thumbprint, password)
        except CertificateStoreError as e:
            self.logger.error(f"Certificate store export failed: {e}")
            attempted = [str(p) for p in self.candidate_paths(thumbprint)]
            attempted.append(f"{self.store.name} (thumbprint {thumbprint}, subject {self.subject_pattern})")
            raise CertificateAcquisitionError(attempted, store_error=str(e)) from e

        return CertificateMaterial(data=data, password=password, source=self.store.name)

    async def _export_from_store(self, thumbprint: str, password: str) -> bytes:
        prefix = re.sub(r"[^A-Za-z0-9]", "", thumbprint)[:40] or "certificate"
        try:
            fd, name = tempfile.mkstemp(prefix=f"{prefix}_", suffix=".pfx", dir=self.temp_dir)
        except OSError as e:
            raise CertificateStoreError(
                f"Could not create temporary file in {self.temp_dir or tempfile.gettempdir()}: {e}"
            ) from e
        os.close(fd)
        temp_path = Path(name)
        try:
            await self.store.export_pfx(thumbprint, password, temp_path, self.subject_pattern)
            try:
                data = temp_path.read_bytes()
            except OSError as e:
                raise CertificateStoreError(f"Could not read exported certificate {temp_path}: {e}") from e
            if not data:
                raise CertificateStoreError("Exported certificate file is empty")
            return data
        finally:
            temp_path.unlink(missing_ok=True)

    @asynccontextmanager
    async def open(self, thumbprint: str, password: str) -> AsyncIterator[CertificateMaterial]:
        """Scoped access to certificate material, released on every exit path."""
        material = await self.load(thumbprint, password)
        try:
            yield material
        finally:
            material.release()
