"""
Platform certificate store capability.

Exports a PKCS#12 bundle from the operating system's credential store.
Platforms without such a store get ``NoCertificateStore``.
"""

import asyncio
import logging
import os
import platform
from abc import ABC, abstractmethod
from pathlib import Path

from ..errors import CertificateStoreError

DEFAULT_SUBJECT_PATTERN = "*SharePoint-Server-MCP-Cert*"

# Inputs arrive through the environment so nothing user-supplied is spliced into the script.
_EXPORT_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$cert = Get-ChildItem -Path $env:SP_MCP_CERT_STORE | Where-Object { $_.Thumbprint -eq $env:SP_MCP_CERT_THUMBPRINT } | Select-Object -First 1
if (-not $cert) {
    $cert = Get-ChildItem -Path $env:SP_MCP_CERT_STORE | Where-Object { $_.Subject -like $env:SP_MCP_CERT_SUBJECT } | Select-Object -First 1
    if ($cert) { Write-Output "Found certificate by subject: $($cert.Thumbprint)" }
}
if (-not $cert) {
    [Console]::Error.WriteLine('Certificate not found in store')
    exit 1
}
$password = ConvertTo-SecureString -String $env:SP_MCP_CERT_PASSWORD -Force -AsPlainText
Export-PfxCertificate -Cert $cert -FilePath $env:SP_MCP_CERT_DESTINATION -Password $password | Out-Null
Write-Output 'Certificate exported successfully'
exit 0
"""


class CertificateStore(ABC):
    """Source of certificates that are not present as files on disk."""

    name = "certificate store"

    @abstractmethod
    async def export_pfx(self, thumbprint: str, password: str, destination: Path,
                         subject_pattern: str = DEFAULT_SUBJECT_PATTERN) -> None:
        """Write the certificate matching ``thumbprint`` (or ``subject_pattern``) to ``destination``.

        Raises:
            CertificateStoreError: the certificate could not be exported.
        """


class NoCertificateStore(CertificateStore):
    """Used on platforms that have no certificate store to export from."""

    name = "no certificate store"

    async def export_pfx(self, thumbprint: str, password: str, destination: Path,
                         subject_pattern: str = DEFAULT_SUBJECT_PATTERN) -> None:
        raise CertificateStoreError(f"No certificate store available on this platform ({platform.system()})")


class WindowsCertificateStore(CertificateStore):
    """Exports from the Windows ``CurrentUser\\My`` store through PowerShell."""

    name = "Windows certificate store"

    def __init__(self, store_path: str = "Cert:\\CurrentUser\\My", timeout: float = 30.0,
                 executable: str = "powershell"):
        self.store_path = store_path
        self.timeout = timeout
        self.executable = executable
        self.logger = logging.getLogger("sharepoint.auth.certificate_store")

    async def export_pfx(self, thumbprint: str, password: str, destination: Path,
                         subject_pattern: str = DEFAULT_SUBJECT_PATTERN) -> None:
        env = dict(os.environ)
        env.update({
            "SP_MCP_CERT_STORE": self.store_path,
            "SP_MCP_CERT_THUMBPRINT": thumbprint,
            "SP_MCP_CERT_SUBJECT": subject_pattern,
            "SP_MCP_CERT_PASSWORD": password,
            "SP_MCP_CERT_DESTINATION": str(destination),
        })

        self.logger.info(f"Exporting certificate {thumbprint[:5]}... from {self.store_path}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable, "-NoProfile", "-NonInteractive", "-Command", _EXPORT_SCRIPT,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise CertificateStoreError(f"Could not start {self.executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _terminate(process)
            raise CertificateStoreError(f"Certificate export timed out after {self.timeout:.0f}s")
        except asyncio.CancelledError:
            # The exported file stays locked until the child is reaped
            await asyncio.shield(_terminate(process))
            raise

        if stdout:
            self.logger.debug(stdout.decode(errors="replace").strip())

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            raise CertificateStoreError(detail or f"Certificate export failed with exit code {process.returncode}")

        if not destination.exists() or destination.stat().st_size == 0:
            raise CertificateStoreError("Certificate export reported success but wrote no data")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


def default_certificate_store() -> CertificateStore:
    """Pick the certificate store implementation for the running platform."""
    if platform.system() == "Windows":
        return WindowsCertificateStore()
    return NoCertificateStore()
