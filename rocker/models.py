from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional

ObjectKind = Literal["container", "image"]
PullPolicy = Literal["always", "missing", "never"]

ContainerAction = Literal[
    "start", "stop", "restart", "kill", "pause", "unpause",
    "rename", "diff", "top", "port", "wait",
]

# ---------------- option bags ----------------

@dataclass(frozen=True)
class RunOptions:
    """Flags shared by ``run`` and ``create``. Everything is optional."""
    add_host: List[str] = field(default_factory=list)
    attach: List[str] = field(default_factory=list)
    blkio_weight: Optional[int] = None
    blkio_weight_device: List[str] = field(default_factory=list)
    cap_add: List[str] = field(default_factory=list)
    cap_drop: List[str] = field(default_factory=list)
    cgroup_parent: Optional[str] = None
    cgroupns: Optional[str] = None
    cidfile: Optional[str] = None
    cpu_period: Optional[int] = None
    cpu_quota: Optional[int] = None
    cpu_rt_period: Optional[int] = None
    cpu_rt_runtime: Optional[int] = None
    cpu_shares: Optional[int] = None
    cpus: Optional[float] = None
    cpuset_cpus: Optional[str] = None
    cpuset_mems: Optional[str] = None
    detach: bool = False
    detach_keys: Optional[str] = None
    device: List[str] = field(default_factory=list)
    device_cgroup_rule: List[str] = field(default_factory=list)
    device_read_bps: List[str] = field(default_factory=list)
    device_read_iops: List[str] = field(default_factory=list)
    device_write_bps: List[str] = field(default_factory=list)
    device_write_iops: List[str] = field(default_factory=list)
    disable_content_trust: bool = False
    dns: List[str] = field(default_factory=list)
    dns_option: List[str] = field(default_factory=list)
    dns_search: List[str] = field(default_factory=list)
    domainname: Optional[str] = None
    entrypoint: Optional[str] = None
    env: List[str] = field(default_factory=list)
    env_file: List[str] = field(default_factory=list)
    expose: List[str] = field(default_factory=list)
    gpus: Optional[str] = None
    group_add: List[str] = field(default_factory=list)
    health_cmd: Optional[str] = None
    health_interval: Optional[str] = None
    health_retries: Optional[int] = None
    health_start_period: Optional[str] = None
    health_timeout: Optional[str] = None
    hostname: Optional[str] = None
    init: bool = False
    interactive: bool = False
    ip: Optional[str] = None
    ip6: Optional[str] = None
    ipc: Optional[str] = None
    isolation: Optional[str] = None
    kernel_memory: Optional[str] = None
    label: List[str] = field(default_factory=list)
    label_file: List[str] = field(default_factory=list)
    link: List[str] = field(default_factory=list)
    link_local_ip: List[str] = field(default_factory=list)
    log_driver: Optional[str] = None
    log_opt: List[str] = field(default_factory=list)
    mac_address: Optional[str] = None
    memory: Optional[str] = None
    memory_reservation: Optional[str] = None
    memory_swap: Optional[str] = None
    memory_swappiness: Optional[int] = None
    mount: List[str] = field(default_factory=list)
    name: Optional[str] = None
    network: Optional[str] = None
    network_alias: List[str] = field(default_factory=list)
    no_healthcheck: bool = False
    oom_kill_disable: bool = False
    oom_score_adj: Optional[int] = None
    pid: Optional[str] = None
    pids_limit: Optional[int] = None
    platform: Optional[str] = None
    privileged: bool = False
    publish: List[str] = field(default_factory=list)
    publish_all: bool = False
    pull: Optional[PullPolicy] = None
    read_only: bool = False
    restart: Optional[str] = None
    rm: bool = False
    security_opt: List[str] = field(default_factory=list)
    storage_opt: List[str] = field(default_factory=list)
    stop_signal: Optional[str] = None
    stop_timeout: Optional[int] = None
    sysctl: List[str] = field(default_factory=list)
    tty: bool = False
    user: Optional[str] = None
    volume: List[str] = field(default_factory=list)
    workdir: Optional[str] = None

@dataclass(frozen=True)
class BuildOptions:
    path: str
    add_host: List[str] = field(default_factory=list)
    build_arg: List[str] = field(default_factory=list)
    cache_from: List[str] = field(default_factory=list)
    cgroup_parent: Optional[str] = None
    compress: bool = False
    cpu_period: Optional[int] = None
    cpu_quota: Optional[int] = None
    cpu_shares: Optional[int] = None
    cpuset_cpus: Optional[str] = None
    cpuset_mems: Optional[str] = None
    disable_content_trust: bool = False
    file: Optional[str] = None
    force_rm: bool = False
    iidfile: Optional[str] = None
    isolation: Optional[str] = None
    label: List[str] = field(default_factory=list)
    memory: Optional[str] = None
    memory_swap: Optional[str] = None
    network: Optional[str] = None
    no_cache: bool = False
    pull: bool = False
    quiet: bool = False
    rm: bool = True
    security_opt: List[str] = field(default_factory=list)
    shm_size: Optional[str] = None
    tag: List[str] = field(default_factory=list)
    target: Optional[str] = None
    ulimit: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class PullOptions:
    name: str
    all_tags: bool = False
    disable_content_trust: bool = True
    platform: Optional[str] = None
    quiet: bool = False

@dataclass(frozen=True)
class AttachOptions:
    container: str
    detach_keys: Optional[str] = None
    no_stdin: bool = False
    sig_proxy: bool = True

@dataclass(frozen=True)
class LogsOptions:
    container: str
    follow: bool = False
    tail: Optional[int] = None
    timestamps: bool = False

# ---------------- request variants ----------------

@dataclass(frozen=True)
class RunRequest:
    image: str
    command: Optional[str] = None
    arguments: List[str] = field(default_factory=list)
    options: RunOptions = field(default_factory=RunOptions)
    start: bool = True     # False = create only

    def argv(self) -> Optional[List[str]]:
        if self.command is None:
            return None
        return [self.command, *self.arguments]

@dataclass(frozen=True)
class ListRequest:
    kind: ObjectKind
    all: bool = False
    quiet: bool = False

@dataclass(frozen=True)
class RemoveRequest:
    kind: ObjectKind
    target: str
    force: bool = False
    no_prune: bool = False   # images only
    volumes: bool = False    # containers only

@dataclass(frozen=True)
class InspectRequest:
    kind: ObjectKind
    target: str

@dataclass(frozen=True)
class PullRequest:
    options: PullOptions

@dataclass(frozen=True)
class BuildRequest:
    options: BuildOptions

@dataclass(frozen=True)
class ExportRequest:
    container: str
    output: Optional[Path] = None

@dataclass(frozen=True)
class SaveRequest:
    image: str
    output: Optional[Path] = None

@dataclass(frozen=True)
class TagRequest:
    source: str
    target: str

@dataclass(frozen=True)
class HistoryRequest:
    image: str
    quiet: bool = False

@dataclass(frozen=True)
class LogsRequest:
    options: LogsOptions

@dataclass(frozen=True)
class AttachRequest:
    options: AttachOptions

@dataclass(frozen=True)
class ContainerActionRequest:
    action: ContainerAction
    container: str
    new_name: Optional[str] = None   # rename
    signal: Optional[str] = None     # kill
    timeout: Optional[int] = None    # stop/restart

@dataclass(frozen=True)
class PruneRequest:
    kind: ObjectKind
    all: bool = False

@dataclass(frozen=True)
class InfoRequest:
    pass

@dataclass(frozen=True)
class RemoteExecRequest:
    language: str
    command: Optional[str] = None
    file_path: Optional[Path] = None

@dataclass(frozen=True)
class RemoteListRequest:
    pass

@dataclass(frozen=True)
class NotImplementedRequest:
    group: str
    action: str
    target: Optional[str] = None
