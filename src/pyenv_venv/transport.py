"""
Download transports for bootstrap scripts

A transport is chosen once per run by probing for curl, then wget, and
falling back to requests. Every transport resumes a partial download.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Optional

import requests

from .config import Config
from .errors import DownloadError

CHUNK_SIZE = 64 * 1024


class Transport:
    """Fetch ``url`` into ``destination``"""

    name = "transport"

    def __init__(self, config: Config):
        self.config = config

    def fetch(self, url: str, destination: Path):
        raise NotImplementedError


class CurlTransport(Transport):
    name = "curl"

    def __init__(self, config: Config, executable: str):
        super().__init__(config)
        self.executable = executable

    def fetch(self, url: str, destination: Path):
        command = [self.executable, "-q", "-o", str(destination), "-C", "-", "-fL", url]
        self.config.trace(" ".join(command))
        result = subprocess.run(command, capture_output=True, text=True)
        # 33: server does not support range requests, the file is complete
        if result.returncode not in (0, 33):
            raise DownloadError(url, result.stderr.strip() or f"curl exited with {result.returncode}")


class WgetTransport(Transport):
    name = "wget"

    def __init__(self, config: Config, executable: str):
        super().__init__(config)
        self.executable = executable

    def fetch(self, url: str, destination: Path):
        command = [self.executable, "-nv", "-c", "-O", str(destination), url]
        self.config.trace(" ".join(command))
        result = subprocess.run(command, capture_output=True, text=True)
        if result.returncode != 0:
            raise DownloadError(url, result.stderr.strip() or f"wget exited with {result.returncode}")


class RequestsTransport(Transport):
    name = "requests"

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        super().__init__(config)
        self.session = session or requests.Session()

    def fetch(self, url: str, destination: Path):
        offset = destination.stat().st_size if destination.exists() else 0
        headers = {"Range": f"bytes={offset}-"} if offset else {}
        self.config.trace(f"GET {url} (offset {offset})")
        try:
            with self.session.get(url, headers=headers, stream=True, timeout=60) as response:
                if response.status_code == 416:
                    return
                response.raise_for_status()
                mode = "ab" if offset and response.status_code == 206 else "wb"
                with open(destination, mode) as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise DownloadError(url, str(e))


def select_transport(config: Config) -> Transport:
    """Probe for an available downloader"""
    curl = shutil.which("curl")
    if curl:
        return CurlTransport(config, curl)
    wget = shutil.which("wget")
    if wget:
        return WgetTransport(config, wget)
    return RequestsTransport(config)


class Downloader:
    """Fetches bootstrap scripts into the shared cache directory"""

    def __init__(self, config: Config, transport: Transport):
        self.config = config
        self.transport = transport

    def obtain(self, local: Optional[str], url: str) -> Path:
        """Local script path if configured, else a download of ``url``"""
        if local:
            path = Path(local)
            if not path.is_file():
                raise DownloadError(str(path), "no such file")
            return path

        destination = self.config.ensure_cache() / url.rstrip("/").rsplit("/", 1)[-1]
        self.transport.fetch(url, destination)
        if not destination.is_file() or destination.stat().st_size == 0:
            raise DownloadError(url, "empty download")
        return destination
