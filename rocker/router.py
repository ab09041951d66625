from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional
import codecs

from docker.errors import DockerException, ImageNotFound, NotFound
import requests
import typer

from rocker.config import RockerConfig
from rocker.models import (
    AttachRequest, BuildRequest, ContainerActionRequest, ExportRequest,
    HistoryRequest, InfoRequest, InspectRequest, ListRequest, LogsRequest,
    NotImplementedRequest, PruneRequest, PullRequest, RemoteExecRequest,
    RemoteListRequest, RemoveRequest, RunRequest, SaveRequest, TagRequest,
)
from rocker.translate import PULL_POLICIES, build_kwargs, create_kwargs, split_tag
from rocker_core.contracts import Chunk
from rocker_core.errors import DecodeError, EngineStreamError, InvalidRequest, RockerError
from rocker_core.io.artifacts import ArchiveWriter
from rocker_core.logging.audit import AuditLogger
from rocker_core.runtime.docker_backend import DockerBackend
from rocker_core.runtime.exec_service import (
    SUPPORTED_LANGUAGES, ExecutionClient, ExecutionRequest,
)

Echo = Callable[..., None]

DIFF_KINDS = {0: "C", 1: "A", 2: "D"}


@dataclass
class CommandResult:
    ok: bool
    error: Optional[RockerError] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok or self.error is None else self.error.status


class CommandRouter:
    """Dispatches one parsed request to exactly one handler.

    Handlers either print a notice or issue a single engine/service call
    (or drain a single stream). Every failure stops at ``handle``: it is
    printed to stderr and returned as a ``CommandResult``.
    """

    _HANDLERS: Dict[type, str] = {
        RunRequest: "_run",
        ListRequest: "_list",
        RemoveRequest: "_remove",
        InspectRequest: "_inspect",
        PullRequest: "_pull",
        BuildRequest: "_build",
        ExportRequest: "_export",
        SaveRequest: "_save",
        TagRequest: "_tag",
        HistoryRequest: "_history",
        LogsRequest: "_logs",
        AttachRequest: "_attach",
        ContainerActionRequest: "_container_action",
        PruneRequest: "_prune",
        InfoRequest: "_info",
        RemoteExecRequest: "_remote_exec",
        RemoteListRequest: "_remote_list",
        NotImplementedRequest: "_not_implemented",
    }

    def __init__(
        self,
        cfg: Optional[RockerConfig] = None,
        backend: Optional[DockerBackend] = None,
        runner: Optional[ExecutionClient] = None,
        auditor: Optional[AuditLogger] = None,
        archives: Optional[ArchiveWriter] = None,
        echo: Echo = typer.echo,
    ) -> None:
        self.cfg = cfg or RockerConfig()
        self._backend = backend
        self._runner = runner
        self.auditor = auditor or AuditLogger(self.cfg.events_path)
        self.archives = archives or ArchiveWriter()
        self.echo = echo

    # clients are built on first use so placeholder commands never touch the daemon
    @property
    def backend(self) -> DockerBackend:
        if self._backend is None:
            self._backend = DockerBackend(
                base_url=self.cfg.engine.base_url,
                timeout=self.cfg.engine.timeout_s,
            )
        return self._backend

    @property
    def runner(self) -> ExecutionClient:
        if self._runner is None:
            self._runner = ExecutionClient(
                runner_url=self.cfg.remote.runner_url,
                timeout_s=self.cfg.remote.timeout_s,
            )
        return self._runner

    def handle(self, req: Any) -> CommandResult:
        name = type(req).__name__
        handler = getattr(self, self._HANDLERS[type(req)])
        self.auditor.log("COMMAND_START", {"request": name, "args": asdict(req)})

        err: Optional[RockerError]
        try:
            err = handler(req)
        except InvalidRequest as e:
            err = RockerError("INVALID_REQUEST", str(e))
        except DecodeError as e:
            err = RockerError("DECODE_ERROR", str(e))
        except EngineStreamError as e:
            err = RockerError("ENGINE_ERROR", str(e))
        except DockerException as e:
            err = RockerError("ENGINE_ERROR", str(e))
        except requests.RequestException as e:
            err = RockerError("SERVICE_ERROR", str(e))
        except OSError as e:
            err = RockerError("FILE_ERROR", str(e))
        except Exception as e:
            err = RockerError("ENGINE_ERROR", f"{type(e).__name__}: {e}")

        if err is not None:
            self.echo(f"Error: {err.message}", err=True)
            self.auditor.log("COMMAND_END", {
                "request": name,
                "ok": False,
                "error_type": err.type,
                "message": err.message,
            })
            return CommandResult(ok=False, error=err)

        self.auditor.log("COMMAND_END", {"request": name, "ok": True})
        return CommandResult(ok=True)

    # ---------------- containers ----------------

    def _run(self, req: RunRequest) -> Optional[RockerError]:
        opts = req.options
        policy = opts.pull or "missing"
        if policy not in PULL_POLICIES:
            raise InvalidRequest(f"invalid --pull value: {policy!r} (expected always, missing or never)")

        kwargs, ignored = create_kwargs(opts)
        self._report_ignored(ignored)

        if policy == "always":
            self._pull_image(req.image, platform=opts.platform, stream=True)
        try:
            container_id = self.backend.create(req.image, req.argv(), **kwargs)
        except ImageNotFound:
            if policy != "missing":
                raise
            self.echo(f"Unable to find image '{req.image}' locally", err=True)
            self._pull_image(req.image, platform=opts.platform, stream=True)
            container_id = self.backend.create(req.image, req.argv(), **kwargs)
        self.auditor.log("CONTAINER_CREATED", {"container_id": container_id, "image": req.image})

        if opts.cidfile:
            Path(opts.cidfile).write_text(container_id, encoding="utf-8")

        if not req.start:
            self.echo(container_id)
            return None

        self.backend.start(container_id)
        if opts.detach:
            self.echo(container_id)
            return None

        self._drain(self.backend.logs(container_id, follow=True))
        try:
            status = self.backend.wait(container_id)
        except NotFound:
            # --rm can remove the container before the wait lands
            if not opts.rm:
                raise
            status = 0
        self.auditor.log("CONTAINER_EXITED", {"container_id": container_id, "status": status})
        if status != 0:
            return RockerError(
                type="NONZERO_EXIT",
                message=f"container {container_id[:12]} exited with status {status}",
                exit_code=status,
            )
        return None

    def _list(self, req: ListRequest) -> None:
        if req.kind == "container":
            containers = self.backend.list_containers(all=req.all)
            self.auditor.log("ENGINE_CALL", {"call": "containers", "count": len(containers)})
            for c in containers:
                if req.quiet:
                    self.echo(c.id)
                else:
                    self.echo(f"{c.id:<12}  {c.image:<30}  {c.status:<24}  {c.name}")
            return

        images = self.backend.list_images(all=req.all)
        self.auditor.log("ENGINE_CALL", {"call": "images", "count": len(images)})
        for i in images:
            if req.quiet:
                self.echo(i.id)
                continue
            created = datetime.fromtimestamp(i.created).strftime("%Y-%m-%d %H:%M:%S")
            tags = ", ".join(i.tags) if i.tags else "<none>"
            self.echo(f"{i.id:<12}  {created}  {tags}")

    def _remove(self, req: RemoveRequest) -> None:
        if req.kind == "container":
            self.backend.remove_container(req.target, force=req.force, volumes=req.volumes)
            self.echo(req.target)
            return
        for status in self.backend.remove_image(req.target, force=req.force, no_prune=req.no_prune):
            for key, value in status.items():
                self.echo(f"{key}: {value}")

    def _inspect(self, req: InspectRequest) -> None:
        if req.kind == "container":
            record = self.backend.inspect_container(req.target)
        else:
            record = self.backend.inspect_image(req.target)
        self.echo(self.archives.json_dumps(record))

    def _export(self, req: ExportRequest) -> None:
        target = self.archives.target(req.output or f"{req.container}.tar")
        total = self.archives.write_stream(target, self.backend.export(req.container))
        self.auditor.log("STREAM_END", {"stream": "export", "path": str(target), "bytes": total})
        self.echo(f"Exported {req.container} to {target} ({total} bytes)")

    def _logs(self, req: LogsRequest) -> None:
        opts = req.options
        self._drain(self.backend.logs(
            opts.container,
            follow=opts.follow,
            tail=opts.tail if opts.tail is not None else "all",
            timestamps=opts.timestamps,
        ))

    def _attach(self, req: AttachRequest) -> None:
        opts = req.options
        # receive-only: local stdin is never forwarded
        self.auditor.log("ATTACH", {
            "container": opts.container,
            "stdin": "not forwarded",
            "sig_proxy": opts.sig_proxy,
        })
        if opts.detach_keys:
            self._report_ignored(["detach_keys"])
        self._drain(self.backend.attach(opts.container))

    def _container_action(self, req: ContainerActionRequest) -> None:
        c = req.container
        if req.action == "start":
            self.backend.start(c)
            self.echo(c)
        elif req.action == "stop":
            self.backend.stop(c, timeout=req.timeout)
            self.echo(c)
        elif req.action == "restart":
            self.backend.restart(c, timeout=req.timeout if req.timeout is not None else 10)
            self.echo(c)
        elif req.action == "kill":
            self.backend.kill(c, signal=req.signal)
            self.echo(c)
        elif req.action == "pause":
            self.backend.pause(c)
            self.echo(c)
        elif req.action == "unpause":
            self.backend.unpause(c)
            self.echo(c)
        elif req.action == "rename":
            if not req.new_name:
                raise InvalidRequest("rename needs a new name")
            self.backend.rename(c, req.new_name)
        elif req.action == "diff":
            for change in self.backend.diff(c):
                self.echo(f"{DIFF_KINDS.get(change.get('Kind'), '?')} {change.get('Path')}")
        elif req.action == "top":
            top = self.backend.top(c)
            self.echo("\t".join(top.get("Titles") or []))
            for row in top.get("Processes") or []:
                self.echo("\t".join(row))
        elif req.action == "port":
            for port, bindings in sorted(self.backend.ports(c).items()):
                for b in bindings or []:
                    self.echo(f"{port} -> {b.get('HostIp') or '0.0.0.0'}:{b.get('HostPort')}")
        elif req.action == "wait":
            self.echo(str(self.backend.wait(c)))
        else:
            raise InvalidRequest(f"unknown container action: {req.action}")
        self.auditor.log("ENGINE_CALL", {"call": req.action, "container": c})

    def _prune(self, req: PruneRequest) -> None:
        if req.kind == "container":
            res = self.backend.prune_containers()
            for cid in res.get("ContainersDeleted") or []:
                self.echo(f"Deleted: {cid}")
        else:
            res = self.backend.prune_images(dangling_only=not req.all)
            for item in res.get("ImagesDeleted") or []:
                for key, value in item.items():
                    self.echo(f"{key}: {value}")
        self.echo(f"Total reclaimed space: {res.get('SpaceReclaimed') or 0} bytes")

    def _info(self, req: InfoRequest) -> None:
        self.echo(self.archives.json_dumps(self.backend.info()))

    # ---------------- images ----------------

    def _pull(self, req: PullRequest) -> None:
        opts = req.options
        if not opts.disable_content_trust:
            self._report_ignored(["enable_content_trust"])
        ref = self._pull_image(
            opts.name,
            all_tags=opts.all_tags,
            platform=opts.platform,
            stream=not opts.quiet,
        )
        if opts.quiet:
            self.echo(ref)

    def _pull_image(
        self,
        image: str,
        all_tags: bool = False,
        platform: Optional[str] = None,
        stream: bool = True,
    ) -> str:
        ref = self.cfg.mirrored(image)
        events = 0
        for event in self.backend.pull(ref, all_tags=all_tags, platform=platform):
            events += 1
            if stream:
                self.echo(format_progress(event))
        self.auditor.log("STREAM_END", {"stream": "pull", "image": ref, "events": events})

        # make the mirrored image answer to the name that was asked for;
        # digest references cannot be tagged
        if ref != image and not all_tags and "@" not in image:
            repo, tag = split_tag(image)
            self.backend.tag(ref, repo, tag)
        return ref

    def _build(self, req: BuildRequest) -> None:
        opts = req.options
        kwargs, ignored = build_kwargs(opts)
        self._report_ignored(ignored)

        image_id: Optional[str] = None
        for event in self.backend.build(**kwargs):
            if "aux" in event and isinstance(event["aux"], dict) and "ID" in event["aux"]:
                image_id = event["aux"]["ID"]
            if "stream" in event:
                text = event["stream"]
                if opts.quiet:
                    if text.strip().startswith("sha256:"):
                        image_id = text.strip()
                else:
                    self.echo(text, nl=False)
            elif "status" in event and not opts.quiet:
                self.echo(format_progress(event))
        self.auditor.log("STREAM_END", {"stream": "build", "image_id": image_id})

        source = image_id or (opts.tag[0] if opts.tag else None)
        for extra in opts.tag[1:]:
            if source is None:
                break
            repo, tag = split_tag(extra)
            self.backend.tag(source, repo, tag)
            if not opts.quiet:
                self.echo(f"Successfully tagged {extra}")
        if opts.iidfile and image_id:
            Path(opts.iidfile).write_text(image_id, encoding="utf-8")
        if opts.quiet and image_id:
            self.echo(image_id)

    def _save(self, req: SaveRequest) -> None:
        target = self.archives.target(req.output or ArchiveWriter.archive_name(req.image))
        total = self.archives.write_stream(target, self.backend.save(req.image))
        self.auditor.log("STREAM_END", {"stream": "save", "path": str(target), "bytes": total})
        self.echo(f"Saved {req.image} to {target} ({total} bytes)")

    def _tag(self, req: TagRequest) -> Optional[RockerError]:
        repo, tag = split_tag(req.target)
        if not self.backend.tag(req.source, repo, tag):
            return RockerError("ENGINE_ERROR", f"failed to tag {req.source} as {req.target}")
        return None

    def _history(self, req: HistoryRequest) -> None:
        for layer in self.backend.history(req.image):
            layer_id = str(layer.get("Id") or "<missing>")
            if layer_id.startswith("sha256:"):
                layer_id = layer_id[len("sha256:"):][:12]
            if req.quiet:
                self.echo(layer_id)
                continue
            created_by = " ".join(str(layer.get("CreatedBy") or "").split())
            if len(created_by) > 60:
                created_by = created_by[:57] + "..."
            self.echo(f"{layer_id:<12}  {created_by:<60}  {layer.get('Size', 0)}")

    # ---------------- remote ----------------

    def _remote_exec(self, req: RemoteExecRequest) -> Optional[RockerError]:
        if req.command is None and req.file_path is None:
            return RockerError("INVALID_REQUEST", "command or code needed!")
        if req.command is not None and req.file_path is not None:
            return RockerError("INVALID_REQUEST", "give either COMMAND or --file-path, not both")

        if req.file_path is not None:
            try:
                code = req.file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                return RockerError("FILE_ERROR", f"cannot read {req.file_path}: {e}")
        else:
            code = req.command or ""

        self.auditor.log("SERVICE_CALL", {"language": req.language, "code_len": len(code)})
        result = self.runner.run(ExecutionRequest(language=req.language, code=code))
        self.auditor.log("SERVICE_RESULT", {
            "result_code": result.result_code,
            "output_len": len(result.output),
            "error_len": len(result.error),
        })

        self.echo(str(result.result_code))
        self.echo(result.output)
        self.echo(result.error)
        if result.result_code != 0:
            rc = result.result_code
            return RockerError(
                type="NONZERO_EXIT",
                message=f"remote program exited with result code {rc}",
                exit_code=rc if 0 < rc < 256 else None,
            )
        return None

    def _remote_list(self, req: RemoteListRequest) -> None:
        for lang in SUPPORTED_LANGUAGES:
            self.echo(lang)

    def _not_implemented(self, req: NotImplementedRequest) -> None:
        self.echo(f"Command not implemented yet: {req.group} {req.action}")

    # ---------------- helpers ----------------

    def _drain(self, chunks: Iterable[Chunk]) -> None:
        # one decoder per stream; a character may straddle two reads
        decoders: Dict[str, Any] = {}
        count = 0
        for chunk in chunks:
            count += 1
            decoder = decoders.get(chunk.stream)
            if decoder is None:
                decoder = decoders[chunk.stream] = codecs.getincrementaldecoder("utf-8")(errors="replace")
            text = decoder.decode(chunk.data)
            if text:
                self.echo(text, nl=False, err=chunk.stream == "stderr")
        for stream, decoder in decoders.items():
            tail = decoder.decode(b"", final=True)
            if tail:
                self.echo(tail, nl=False, err=stream == "stderr")
        self.auditor.log("STREAM_END", {"chunks": count})

    def _report_ignored(self, names: List[str]) -> None:
        if not names:
            return
        flags = ", ".join("--" + n.replace("_", "-") for n in names)
        self.echo(f"Warning: ignoring unsupported flags: {flags}", err=True)
        self.auditor.log("FLAGS_IGNORED", {"flags": names})


def format_progress(event: Dict[str, Any]) -> str:
    """One display line for a pull/push progress event."""
    parts = []
    if event.get("id"):
        parts.append(f"{event['id']}:")
    if event.get("status"):
        parts.append(str(event["status"]))
    if event.get("progress"):
        parts.append(str(event["progress"]))
    return " ".join(parts)
