# eibkit

Helpers for the steps that go into building an edge operating system image:
preparing the build workspace, copying configuration files with the right
permissions, downloading artefacts, and working with Helm charts.

## Installation

```
pip install eibkit
```

To run the test suite:

```
pip install "eibkit[test]"
pytest
```

## Build workspace

`eibkit.workspace` creates the directories a build works in.

```python
from eibkit.workspace import setup_build_directory, setup_combustion_directory

build_dir = setup_build_directory("/tmp/eib")          # /tmp/eib/build-Jan02_15-04-05
combustion_dir, artefacts_dir = setup_combustion_directory(build_dir)
```

`setup_build_directory` names the directory after the current time and creates
the root directory too if it does not exist yet.

## Copying files

`eibkit.fileio` copies files and sets their permissions explicitly.

```python
from eibkit.fileio import copy_file, copy_files, file_exists

copy_file("custom/script.sh", "build/combustion/script.sh", 0o744)

# Copy every .rpm under rpms/, keeping the sub-directory layout,
# and give each copy rw-r--r-- permissions.
copy_files("rpms", "build/rpms", ".rpm", True, 0o644)

# Copy only the top-level files, keeping their original permissions.
copy_files("certs", "build/certs", "", False, None)

if file_exists("build/rpms/package.rpm"):
    ...
```

`copy_file_n` writes everything from a readable binary stream to a file,
reading it in chunks of the given size.

## Downloading

```python
from eibkit.download import DownloadError, download_file

try:
    download_file("https://example.com/artefact.tar.gz", "artefact.tar.gz", None)
except DownloadError as err:
    print(f"download failed: {err}")
```

Pass a writable binary stream as the third argument to receive a second copy
of the downloaded bytes, for example to fill a cache alongside the target
file. A progress bar is shown when the server reports the content length.

## Helm

`eibkit.helm` builds and runs `helm` command lines for adding repositories,
logging into OCI registries, pulling charts and rendering templates. The
command builders (`add_repo_command`, `registry_login_command`,
`pull_command`, `template_command`) return a `HelmCommand` without running
anything, which makes them easy to inspect. The `Helm` class runs them and
appends each command's output to a log file in its output directory.

```python
from eibkit.helm import chart_path, get_host, parse_chart_contents

chart_path("edge", "https://charts.example.com", "metallb")   # "edge/metallb"
chart_path("apache-repo", "oci://registry.example.com/charts", "apache")
# "oci://registry.example.com/charts/apache"

get_host("oci://registry.example.com/charts")                 # "registry.example.com"

resources = parse_chart_contents(rendered_output)
for resource in resources:
    print(resource["kind"], resource["metadata"]["name"])
```

`parse_chart_contents` takes the output of `helm template` and returns one
dictionary per rendered resource that carries a `# Source` header.

The `helm` executable must be on `PATH` for the `Helm` methods to work.