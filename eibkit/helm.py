"""Building and running helm commands for repositories, registries and charts."""

from __future__ import annotations

import glob
import logging
import os
import posixpath
import subprocess
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import IO, Any
from urllib.parse import urlsplit, urlunsplit

import yaml

from eibkit.fileio import NON_EXECUTABLE_PERMS

logger = logging.getLogger(__name__)

TEMPLATE_LOG_FILE_NAME = "helm-template.log"
PULL_LOG_FILE_NAME = "helm-pull.log"
REPO_ADD_LOG_FILE_NAME = "helm-repo-add.log"
REGISTRY_LOGIN_LOG_FILE_NAME = "helm-registry-login.log"

_OUTPUT_FILE_FLAGS = os.O_APPEND | os.O_CREAT | os.O_WRONLY


@dataclass
class HelmAuthentication:
    """Credentials used to reach a Helm repository or registry."""

    username: str = ""
    password: str = ""


@dataclass
class HelmRepository:
    """A Helm chart repository (HTTP) or OCI registry."""

    name: str
    url: str
    authentication: HelmAuthentication = field(default_factory=HelmAuthentication)
    skip_tls_verify: bool = False
    plain_http: bool = False
    ca_file: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.authentication.username and self.authentication.password)


@dataclass(frozen=True)
class HelmCommand:
    """A helm invocation; ``args`` starts with the program name."""

    args: tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.args)

    def run(self, stdout: Any = None, stderr: Any = None) -> subprocess.CompletedProcess:
        """Run the command, raising CalledProcessError if it fails."""
        return subprocess.run(self.args, stdout=stdout, stderr=stderr, check=True)


def _command(args: Sequence[str]) -> HelmCommand:
    return HelmCommand(("helm", *args))


def chart_path(repo_name: str, repo_url: str, chart: str) -> str:
    """Return the reference helm uses to pull ``chart`` from the repository."""
    if repo_url.startswith("http"):
        return f"{repo_name}/{chart}"

    try:
        parts = urlsplit(repo_url)
    except ValueError:
        return ""
    path = posixpath.normpath(posixpath.join(parts.path or "/", chart))
    return urlunsplit(parts._replace(path=path))


def add_repo_command(repo: HelmRepository, certs_dir: str) -> HelmCommand:
    """Build the ``helm repo add`` command for ``repo``."""
    args = ["repo", "add", repo.name, repo.url]

    if repo.has_credentials:
        args += ["--username", repo.authentication.username, "--password", repo.authentication.password]

    if repo.skip_tls_verify:
        args.append("--insecure-skip-tls-verify")
    elif repo.ca_file:
        args += ["--ca-file", os.path.join(certs_dir, repo.ca_file)]

    return _command(args)


def registry_login_command(host: str, repo: HelmRepository, certs_dir: str) -> HelmCommand:
    """Build the ``helm registry login`` command for ``host``."""
    args = ["registry", "login", host]

    if repo.has_credentials:
        args += ["--username", repo.authentication.username, "--password", repo.authentication.password]

    if repo.skip_tls_verify or repo.plain_http:
        args.append("--insecure")
    elif repo.ca_file:
        args += ["--ca-file", os.path.join(certs_dir, repo.ca_file)]

    return _command(args)


def pull_command(
    chart: str,
    repo: HelmRepository,
    version: str = "",
    dest_dir: str = "",
    certs_dir: str = "",
) -> HelmCommand:
    """Build the ``helm pull`` command for ``chart``."""
    args = ["pull", chart_path(repo.name, repo.url, chart)]

    if version:
        args += ["--version", version]
    if dest_dir:
        args += ["--destination", dest_dir]

    if repo.skip_tls_verify:
        args.append("--insecure-skip-tls-verify")
    elif repo.plain_http:
        args.append("--plain-http")
    elif repo.ca_file:
        args += ["--ca-file", os.path.join(certs_dir, repo.ca_file)]

    return _command(args)


def template_command(
    chart: str,
    repository: str,
    version: str = "",
    values_file_path: str = "",
    kube_version: str = "",
    target_namespace: str = "",
    api_versions: Sequence[str] | None = None,
) -> HelmCommand:
    """Build the ``helm template`` command for ``chart``."""
    args = ["template", "--skip-crds", chart, repository]

    if target_namespace:
        args += ["--namespace", target_namespace]
    if version:
        args += ["--version", version]
    if values_file_path:
        args += ["-f", values_file_path]
    if api_versions:
        args += ["--api-versions", ",".join(api_versions)]

    args += ["--kube-version", kube_version]
    return _command(args)


def parse_chart_contents(chart_contents: str) -> list[dict[str, Any]]:
    """Parse the resources rendered by ``helm template``.

    Only documents that begin with a ``# Source`` comment are kept.
    """
    resources: list[dict[str, Any]] = []

    for resource in chart_contents.split("---\n"):
        resource = resource.strip()
        if not resource.startswith("# Source"):
            continue

        source, found, content = resource.partition("\n")
        if not found:
            logger.warning("Invalid Helm resource: %s", resource)
            continue

        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as err:
            raise ValueError(f"decoding resource from source '{source}': {err}") from err

        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise ValueError(
                f"decoding resource from source '{source}': "
                f"expected a mapping, got {type(parsed).__name__}"
            )
        resources.append(parsed)

    return resources


def get_host(repo_url: str) -> str:
    """Return the host (with port, if any) of ``repo_url``."""
    try:
        return urlsplit(repo_url).netloc.rpartition("@")[2]
    except ValueError as err:
        raise ValueError(f"parsing url {repo_url!r}: {err}") from err


@contextmanager
def _log_file(path: str) -> Iterator[IO[str]]:
    fd = os.open(path, _OUTPUT_FILE_FLAGS, NON_EXECUTABLE_PERMS)
    handle = os.fdopen(fd, "a")
    try:
        yield handle
    finally:
        try:
            handle.close()
        except OSError as err:
            logger.warning("Closing %s file failed: %s", path, err)


class Helm:
    """Runs helm, logging each command and its output under ``output_dir``."""

    def __init__(self, output_dir: str, certs_dir: str) -> None:
        self.output_dir = output_dir
        self.certs_dir = certs_dir

    def _log_path(self, name: str) -> str:
        return os.path.join(self.output_dir, name)

    @staticmethod
    def _run_logged(cmd: HelmCommand, log: IO[str]) -> None:
        log.write(f"command: {cmd}\n")
        log.flush()
        cmd.run(stdout=log, stderr=log)

    def add_repo(self, repo: HelmRepository) -> None:
        """Add ``repo`` to helm's repository list."""
        with _log_file(self._log_path(REPO_ADD_LOG_FILE_NAME)) as log:
            self._run_logged(add_repo_command(repo, self.certs_dir), log)

    def registry_login(self, repo: HelmRepository) -> None:
        """Log in to the OCI registry that hosts ``repo``."""
        with _log_file(self._log_path(REGISTRY_LOGIN_LOG_FILE_NAME)) as log:
            host = get_host(repo.url)
            self._run_logged(registry_login_command(host, repo, self.certs_dir), log)

    def pull(self, chart: str, repo: HelmRepository, version: str, dest_dir: str) -> str:
        """Download ``chart`` into its own directory and return the archive path."""
        with _log_file(self._log_path(PULL_LOG_FILE_NAME)) as log:
            chart_dir = os.path.join(dest_dir, chart)
            os.makedirs(chart_dir, exist_ok=True)

            self._run_logged(pull_command(chart, repo, version, chart_dir, self.certs_dir), log)

        matches = glob.glob(f"{chart_dir}/{chart}-*.tgz")
        if len(matches) != 1:
            raise FileNotFoundError(f"unable to locate downloaded chart: {chart}")
        return matches[0]

    def template(
        self,
        chart: str,
        repository: str,
        version: str,
        values_file_path: str,
        kube_version: str,
        target_namespace: str,
        api_versions: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Render ``chart`` and return the resources it produces."""
        with _log_file(self._log_path(TEMPLATE_LOG_FILE_NAME)) as log:
            cmd = template_command(
                chart, repository, version, values_file_path, kube_version, target_namespace, api_versions
            )
            log.write(f"command: {cmd}\n")
            log.flush()

            completed = cmd.run(stdout=subprocess.PIPE, stderr=log)
            contents = completed.stdout.decode()
            log.write(contents)

        return parse_chart_contents(contents)