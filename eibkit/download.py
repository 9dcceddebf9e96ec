"""Downloading files over HTTP with progress reporting."""

from __future__ import annotations

import logging
import os
import urllib.error
import urllib.request
from typing import BinaryIO

from tqdm import tqdm

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 32 * 1024


class DownloadError(Exception):
    """Raised when a file cannot be downloaded and stored."""


def download_file(url: str, path: str | os.PathLike[str], cache: BinaryIO | None = None) -> None:
    """Download ``url`` and store it at ``path``.

    When ``cache`` is given, the downloaded bytes are also written to it.
    """
    filename = os.path.basename(path)
    logger.info(
        "Downloading file '%s' from '%s' to '%s'...",
        filename,
        url,
        os.path.dirname(path),
    )

    try:
        response = urllib.request.urlopen(url)  # noqa: S310 - caller supplies the URL
    except urllib.error.HTTPError as err:
        err.close()
        raise DownloadError(f"unexpected status code: {err.code}") from err
    except (urllib.error.URLError, ValueError, OSError) as err:
        raise DownloadError(f"executing request: {err}") from err

    with response:
        if response.status != 200:
            raise DownloadError(f"unexpected status code: {response.status}")

        try:
            target = open(path, "wb")  # noqa: SIM115 - closed below
        except OSError as err:
            raise DownloadError(f"creating file: {err}") from err

        message = f"Downloading file: {filename}"
        length_header = response.headers.get("Content-Length")
        bar = None
        if length_header is None:
            # Progress bars of unknown length do not render well.
            logger.info(message)
        else:
            bar = tqdm(
                total=int(length_header),
                desc=message,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
            )

        try:
            with target:
                while chunk := response.read(_CHUNK_SIZE):
                    target.write(chunk)
                    if cache is not None:
                        cache.write(chunk)
                    if bar is not None:
                        bar.update(len(chunk))
        except OSError as err:
            raise DownloadError(f"storing response: {err}") from err
        finally:
            if bar is not None:
                bar.close()

    logger.info("Downloading file '%s' completed", filename)