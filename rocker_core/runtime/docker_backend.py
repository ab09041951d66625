from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union
import docker

from rocker_core.contracts import Chunk
from rocker_core.errors import EngineStreamError

EXPORT_CHUNK_SIZE = 2 * 1024 * 1024

@dataclass(frozen=True)
class ContainerSummary:
    id: str
    image: str
    status: str
    name: str

@dataclass(frozen=True)
class ImageSummary:
    id: str
    created: int
    tags: List[str] = field(default_factory=list)

class DockerBackend:
    """Thin passthrough over the docker SDK's low-level API client.

    Every method issues exactly one engine call (or opens exactly one
    stream); nothing here retries or caches.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: int = 60) -> None:
        if base_url:
            self.client = docker.DockerClient(base_url=base_url, timeout=timeout)
        else:
            self.client = docker.from_env(timeout=timeout)
        self.api = self.client.api

    # ---------------- listing / inspection ----------------

    def list_containers(self, all: bool = False) -> List[ContainerSummary]:
        out = []
        for c in self.api.containers(all=all):
            names = c.get("Names") or []
            out.append(ContainerSummary(
                id=c["Id"][:12],
                image=c.get("Image", ""),
                status=c.get("Status", ""),
                name=names[0].lstrip("/") if names else "",
            ))
        return out

    def list_images(self, all: bool = False) -> List[ImageSummary]:
        out = []
        for i in self.api.images(all=all):
            tags = [t for t in (i.get("RepoTags") or []) if t != "<none>:<none>"]
            out.append(ImageSummary(
                id=i["Id"].split(":", 1)[-1][:12],
                created=int(i.get("Created", 0)),
                tags=tags,
            ))
        return out

    def inspect_container(self, container: str) -> Dict[str, Any]:
        return self.api.inspect_container(container)

    def inspect_image(self, image: str) -> Dict[str, Any]:
        return self.api.inspect_image(image)

    def info(self) -> Dict[str, Any]:
        return self.api.info()

    def history(self, image: str) -> List[Dict[str, Any]]:
        return self.api.history(image)

    # ---------------- container lifecycle ----------------

    def create(self, image: str, command: Optional[List[str]] = None, **kwargs: Any) -> str:
        container = self.client.containers.create(image=image, command=command, **kwargs)
        return container.id

    def start(self, container: str) -> None:
        self.api.start(container)

    def stop(self, container: str, timeout: Optional[int] = None) -> None:
        self.api.stop(container, timeout=timeout)

    def restart(self, container: str, timeout: int = 10) -> None:
        self.api.restart(container, timeout=timeout)

    def kill(self, container: str, signal: Optional[str] = None) -> None:
        self.api.kill(container, signal=signal)

    def pause(self, container: str) -> None:
        self.api.pause(container)

    def unpause(self, container: str) -> None:
        self.api.unpause(container)

    def rename(self, container: str, new_name: str) -> None:
        self.api.rename(container, new_name)

    def wait(self, container: str) -> int:
        res = self.api.wait(container)
        return int(res.get("StatusCode", 0))

    def diff(self, container: str) -> List[Dict[str, Any]]:
        return self.api.diff(container) or []

    def top(self, container: str) -> Dict[str, Any]:
        return self.api.top(container)

    def ports(self, container: str) -> Dict[str, Any]:
        settings = self.inspect_container(container).get("NetworkSettings") or {}
        return settings.get("Ports") or {}

    def remove_container(self, container: str, force: bool = False, volumes: bool = False) -> None:
        self.api.remove_container(container, v=volumes, force=force)

    def prune_containers(self) -> Dict[str, Any]:
        return self.api.prune_containers()

    # ---------------- images ----------------

    def remove_image(self, image: str, force: bool = False, no_prune: bool = False) -> List[Dict[str, Any]]:
        res = self.api.remove_image(image, force=force, noprune=no_prune)
        return res if isinstance(res, list) else []

    def tag(self, image: str, repository: str, tag: Optional[str] = None) -> bool:
        return bool(self.api.tag(image, repository, tag=tag))

    def prune_images(self, dangling_only: bool = True) -> Dict[str, Any]:
        return self.api.prune_images(filters={"dangling": dangling_only})

    # ---------------- streams ----------------

    def pull(self, repository: str, all_tags: bool = False, platform: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        stream = self.api.pull(
            repository,
            stream=True,
            decode=True,
            all_tags=all_tags,
            platform=platform,
        )
        for event in stream:
            if "error" in event:
                raise EngineStreamError(event["error"])
            yield event

    def build(self, **kwargs: Any) -> Iterator[Dict[str, Any]]:
        for event in self.api.build(decode=True, **kwargs):
            if "error" in event:
                raise EngineStreamError(event["error"].strip())
            yield event

    def export(self, container: str) -> Iterator[bytes]:
        return self.api.export(container, chunk_size=EXPORT_CHUNK_SIZE)

    def save(self, image: str) -> Iterator[bytes]:
        return self.api.get_image(image, chunk_size=EXPORT_CHUNK_SIZE)

    def logs(
        self,
        container: str,
        follow: bool = False,
        tail: Union[int, str] = "all",
        timestamps: bool = False,
    ) -> Iterator[Chunk]:
        # the API client strips the multiplexing headers, so origin is lost
        stream = self.api.logs(
            container,
            stdout=True,
            stderr=True,
            stream=True,
            follow=follow,
            tail=tail,
            timestamps=timestamps,
        )
        for data in stream:
            yield Chunk("stdout", data)

    def attach(self, container: str, stdout: bool = True, stderr: bool = True) -> Iterator[Chunk]:
        stream = self.api.attach(
            container,
            stdout=stdout,
            stderr=stderr,
            stream=True,
            logs=False,
            demux=True,
        )
        for out, err in stream:
            if out:
                yield Chunk("stdout", out)
            if err:
                yield Chunk("stderr", err)
