"""Shared fakes for the rocker test suite.

Nothing here talks to a Docker daemon or the network: the router is wired
to an in-memory backend and execution client instead.
"""

from typing import Any, Dict, Iterator, List

import pytest
from docker.errors import ImageNotFound

from rocker.router import CommandRouter
from rocker_core.contracts import Chunk
from rocker_core.errors import EngineStreamError
from rocker_core.io.artifacts import ArchiveWriter
from rocker_core.logging.audit import AuditLogger
from rocker_core.runtime.docker_backend import ContainerSummary, ImageSummary
from rocker_core.runtime.exec_service import ExecutionResult


class EchoRecorder:
    """Stands in for typer.echo and keeps stdout/stderr apart."""

    def __init__(self):
        self.out: List[str] = []
        self.err: List[str] = []

    def __call__(self, message="", nl=True, err=False):
        text = str(message) + ("\n" if nl else "")
        (self.err if err else self.out).append(text)

    @property
    def stdout(self) -> str:
        return "".join(self.out)

    @property
    def stderr(self) -> str:
        return "".join(self.err)


class FakeBackend:
    """In-memory DockerBackend that records every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.container_id = "c0ffee0123456789abcdef"
        self.containers: List[ContainerSummary] = []
        self.images: List[ImageSummary] = []
        self.missing_images: set = set()
        self.log_chunks: List[Chunk] = []
        self.attach_chunks: List[Chunk] = []
        self.export_chunks: List[bytes] = []
        self.pull_events: List[Dict[str, Any]] = []
        self.build_events: List[Dict[str, Any]] = []
        self.wait_status = 0
        self.tag_result = True

    def list_containers(self, all=False):
        self.calls.append(("list_containers", all))
        return self.containers

    def list_images(self, all=False):
        self.calls.append(("list_images", all))
        return self.images

    def inspect_container(self, container):
        self.calls.append(("inspect_container", container))
        return {"Id": container, "State": {"Status": "running"}}

    def inspect_image(self, image):
        self.calls.append(("inspect_image", image))
        return {"Id": image}

    def info(self):
        self.calls.append(("info",))
        return {"Containers": 1}

    def create(self, image, command=None, **kwargs):
        self.calls.append(("create", image, command, kwargs))
        if image in self.missing_images:
            raise ImageNotFound(f"No such image: {image}")
        return self.container_id

    def start(self, container):
        self.calls.append(("start", container))

    def stop(self, container, timeout=None):
        self.calls.append(("stop", container, timeout))

    def restart(self, container, timeout=10):
        self.calls.append(("restart", container, timeout))

    def kill(self, container, signal=None):
        self.calls.append(("kill", container, signal))

    def rename(self, container, new_name):
        self.calls.append(("rename", container, new_name))

    def wait(self, container):
        self.calls.append(("wait", container))
        return self.wait_status

    def diff(self, container):
        self.calls.append(("diff", container))
        return [{"Kind": 0, "Path": "/etc"}, {"Kind": 1, "Path": "/etc/motd"}]

    def remove_container(self, container, force=False, volumes=False):
        self.calls.append(("remove_container", container, force, volumes))

    def prune_containers(self):
        self.calls.append(("prune_containers",))
        return {"ContainersDeleted": ["aaa", "bbb"], "SpaceReclaimed": 42}

    def remove_image(self, image, force=False, no_prune=False):
        self.calls.append(("remove_image", image, force, no_prune))
        return [{"Untagged": image}, {"Deleted": "sha256:feed"}]

    def tag(self, image, repository, tag=None):
        self.calls.append(("tag", image, repository, tag))
        return self.tag_result

    def pull(self, repository, all_tags=False, platform=None) -> Iterator[Dict[str, Any]]:
        self.calls.append(("pull", repository, all_tags, platform))
        for event in self.pull_events:
            if "error" in event:
                raise EngineStreamError(event["error"])
            yield event
        self.missing_images.discard(repository)

    def build(self, **kwargs) -> Iterator[Dict[str, Any]]:
        self.calls.append(("build", kwargs))
        for event in self.build_events:
            if "error" in event:
                raise EngineStreamError(event["error"])
            yield event

    def export(self, container):
        self.calls.append(("export", container))
        return iter(self.export_chunks)

    def save(self, image):
        self.calls.append(("save", image))
        return iter(self.export_chunks)

    def logs(self, container, follow=False, tail="all", timestamps=False):
        self.calls.append(("logs", container, follow, tail, timestamps))
        return iter(self.log_chunks)

    def attach(self, container):
        self.calls.append(("attach", container))
        return iter(self.attach_chunks)

    def history(self, image):
        self.calls.append(("history", image))
        return [{"Id": "sha256:0123456789abcdef", "CreatedBy": "/bin/sh -c #(nop) CMD [\"sh\"]", "Size": 0}]


class FakeRunner:
    """ExecutionClient double: returns a canned result, remembers requests."""

    def __init__(self, result=None):
        self.requests = []
        self.result = result or ExecutionResult(result_code=0, output="hi", error="")

    def run(self, req):
        self.requests.append(req)
        return self.result


@pytest.fixture
def echo():
    return EchoRecorder()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def audit_path(tmp_path):
    return tmp_path / "audit" / "events.jsonl"


@pytest.fixture
def router(backend, runner, echo, tmp_path, audit_path):
    return CommandRouter(
        backend=backend,
        runner=runner,
        auditor=AuditLogger(audit_path),
        archives=ArchiveWriter(out_dir=tmp_path),
        echo=echo,
    )
