"""
Translation of Docker-style flag values into docker SDK keyword arguments.

The option bags hold flags exactly as typed; nothing is interpreted until
one of ``create_kwargs`` / ``build_kwargs`` runs. Values the SDK cannot
express are returned by name so the caller can report them.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union, get_args
import os
import re

from docker.errors import DockerException
from docker.types import DeviceRequest, LogConfig, Mount
from docker.utils import parse_bytes

from rocker.models import BuildOptions, PullPolicy, RunOptions
from rocker_core.errors import InvalidRequest

PortBinding = Union[None, int, Tuple[str], Tuple[str, Optional[int]]]

PULL_POLICIES: Tuple[str, ...] = get_args(PullPolicy)

# flags accepted for compatibility that have no docker SDK equivalent
RUN_IGNORED = (
    "attach", "detach_keys", "disable_content_trust", "expose",
    "ip", "ip6", "link_local_ip", "network_alias", "stop_timeout",
)
BUILD_IGNORED = (
    "cgroup_parent", "cpu_period", "cpu_quota", "cpuset_mems",
    "disable_content_trust", "security_opt", "ulimit",
)

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|ms|s|m|h)")
_DURATION_NS = {
    "ns": 1,
    "us": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}


# ---------------- scalar parsers ----------------

def parse_duration(value: str) -> int:
    """Go-style duration (``1m30s``, ``500ms``) to nanoseconds."""
    text = value.strip()
    pos = 0
    total = 0.0
    for m in _DURATION_RE.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_NS[m.group(2)]
        pos = m.end()
    if not text or pos != len(text):
        raise InvalidRequest(f"invalid duration: {value!r}")
    return int(total)


def parse_restart(value: str) -> Dict[str, Any]:
    name, _, count = value.partition(":")
    if name not in ("no", "always", "unless-stopped", "on-failure"):
        raise InvalidRequest(f"invalid restart policy: {value!r}")
    if count and name != "on-failure":
        raise InvalidRequest(f"maximum retry count only applies to on-failure: {value!r}")
    try:
        retries = int(count) if count else 0
    except ValueError:
        raise InvalidRequest(f"invalid restart retry count: {value!r}") from None
    return {"Name": name, "MaximumRetryCount": retries}


def parse_key_values(items: List[str], flag: str, resolve_env: bool = False) -> Dict[str, str]:
    """``KEY=VALUE`` items into a dict (last write wins)."""
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not key:
            raise InvalidRequest(f"invalid {flag} value: {item!r}")
        if not sep:
            if resolve_env:
                if key not in os.environ:
                    continue
                value = os.environ[key]
        out[key] = value
    return out


def parse_env(items: List[str]) -> List[str]:
    # bare names take their value from the calling environment, as docker does
    out = []
    for item in items:
        if "=" in item:
            out.append(item)
        elif item in os.environ:
            out.append(f"{item}={os.environ[item]}")
    return out


def read_lines_file(path: str) -> List[str]:
    """Non-empty, non-comment lines of an env/label file."""
    lines = []
    for raw in Path(path).read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            lines.append(line)
    return lines


def parse_host_map(items: List[str], flag: str) -> Dict[str, str]:
    """``host:ip`` pairs; the IP part may itself contain colons."""
    out: Dict[str, str] = {}
    for item in items:
        host, sep, ip = item.partition(":")
        if not host or not sep or not ip:
            raise InvalidRequest(f"invalid {flag} value: {item!r}")
        out[host] = ip
    return out


def parse_links(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        name, _, alias = item.partition(":")
        out[name] = alias or name
    return out


def _port_range(text: str, item: str) -> List[int]:
    try:
        if "-" in text:
            lo, hi = (int(x) for x in text.split("-", 1))
            if hi < lo:
                raise ValueError
            return list(range(lo, hi + 1))
        return [int(text)]
    except ValueError:
        raise InvalidRequest(f"invalid port in --publish {item!r}") from None


def parse_publish(items: List[str]) -> Dict[str, Union[PortBinding, List[PortBinding]]]:
    """
    ``[ip:][host:]container[/proto]`` into the ``ports`` mapping docker-py
    expects. Ranges expand one-to-one; a container port published twice
    collects its bindings into a list.
    """
    ports: Dict[str, Any] = {}
    for item in items:
        binding_spec, _, proto = item.partition("/")
        proto = proto or "tcp"
        parts = binding_spec.split(":")
        if len(parts) == 1:
            ip, host, ctr = None, "", parts[0]
        elif len(parts) == 2:
            ip, host, ctr = None, parts[0], parts[1]
        elif len(parts) == 3:
            ip, host, ctr = parts[0] or None, parts[1], parts[2]
        else:
            raise InvalidRequest(f"invalid --publish value: {item!r}")

        ctr_ports = _port_range(ctr, item)
        host_ports: List[Optional[int]]
        if host:
            host_ports = [*_port_range(host, item)]
            if len(host_ports) != len(ctr_ports):
                raise InvalidRequest(f"port ranges do not match in --publish {item!r}")
        else:
            host_ports = [None] * len(ctr_ports)

        for c, h in zip(ctr_ports, host_ports):
            binding: PortBinding
            if ip is not None:
                binding = (ip, h) if h is not None else (ip,)
            else:
                binding = h
            key = f"{c}/{proto}"
            if key in ports:
                prev = ports[key]
                ports[key] = (prev if isinstance(prev, list) else [prev]) + [binding]
            else:
                ports[key] = binding
    return ports


def parse_mount(value: str) -> Mount:
    fields: Dict[str, str] = {}
    flags = set()
    for part in value.split(","):
        key, sep, val = part.partition("=")
        if sep:
            fields[key.strip()] = val.strip()
        elif key:
            flags.add(key.strip())
    target = fields.get("target") or fields.get("destination") or fields.get("dst")
    if not target:
        raise InvalidRequest(f"--mount requires a target: {value!r}")
    source = fields.get("source") or fields.get("src")
    read_only = "readonly" in flags or "ro" in flags or fields.get("readonly") in ("1", "true")
    return Mount(
        target=target,
        source=source,
        type=fields.get("type", "volume"),
        read_only=read_only,
    )


def parse_device_rates(items: List[str], flag: str, key: str, as_bytes: bool) -> List[Dict[str, Any]]:
    """``/dev/sda:10mb`` style items into ``[{"Path": ..., key: ...}]``."""
    out = []
    for item in items:
        path, sep, rate = item.rpartition(":")
        if not sep or not path or not rate:
            raise InvalidRequest(f"invalid {flag} value: {item!r}")
        try:
            value = parse_bytes(rate) if as_bytes else int(rate)
        except (DockerException, ValueError):
            raise InvalidRequest(f"invalid {flag} value: {item!r}") from None
        out.append({"Path": path, key: value})
    return out


def parse_gpus(value: str) -> List[DeviceRequest]:
    wanted = value.strip()
    if wanted.startswith("count="):
        wanted = wanted[len("count="):]
    if wanted == "all":
        count = -1
    else:
        try:
            count = int(wanted)
        except ValueError:
            raise InvalidRequest(f"invalid --gpus value: {value!r}") from None
    return [DeviceRequest(count=count, capabilities=[["gpu"]])]


def healthcheck(opts: RunOptions) -> Optional[Dict[str, Any]]:
    if opts.no_healthcheck:
        return {"test": ["NONE"]}
    hc: Dict[str, Any] = {}
    if opts.health_cmd:
        hc["test"] = ["CMD-SHELL", opts.health_cmd]
    if opts.health_interval:
        hc["interval"] = parse_duration(opts.health_interval)
    if opts.health_timeout:
        hc["timeout"] = parse_duration(opts.health_timeout)
    if opts.health_start_period:
        hc["start_period"] = parse_duration(opts.health_start_period)
    if opts.health_retries is not None:
        hc["retries"] = opts.health_retries
    return hc or None


def _ignored(opts: Any, names: Tuple[str, ...]) -> List[str]:
    out = []
    for name in names:
        value = getattr(opts, name)
        if value is None or value is False or value == [] or value == "":
            continue
        out.append(name)
    return out


# ---------------- option bags ----------------

def create_kwargs(opts: RunOptions) -> Tuple[Dict[str, Any], List[str]]:
    """
    Map RunOptions onto ``ContainerCollection.create`` keyword arguments.

    Returns ``(kwargs, ignored_flag_names)``. Local files named by
    ``--env-file`` / ``--label-file`` are read here, so OSError can escape.
    """
    kw: Dict[str, Any] = {}

    def put(key: str, value: Any) -> None:
        if value not in (None, False, [], {}, ""):
            kw[key] = value

    env_items = list(opts.env)
    for path in opts.env_file:
        env_items.extend(read_lines_file(path))
    label_items = list(opts.label)
    for path in opts.label_file:
        label_items.extend(read_lines_file(path))

    put("name", opts.name)
    put("hostname", opts.hostname)
    put("domainname", opts.domainname)
    put("user", opts.user)
    put("working_dir", opts.workdir)
    put("entrypoint", opts.entrypoint)
    put("environment", parse_env(env_items))
    put("labels", parse_key_values(label_items, "--label"))
    put("mac_address", opts.mac_address)
    put("stop_signal", opts.stop_signal)
    put("platform", opts.platform)
    put("detach", opts.detach)
    put("stdin_open", opts.interactive)
    put("tty", opts.tty)
    put("healthcheck", healthcheck(opts))

    # host config
    put("auto_remove", opts.rm)
    put("privileged", opts.privileged)
    put("read_only", opts.read_only)
    put("init", opts.init)
    put("publish_all_ports", opts.publish_all)
    put("ports", parse_publish(opts.publish))
    put("volumes", list(opts.volume))
    put("mounts", [parse_mount(m) for m in opts.mount])
    put("network", opts.network)
    put("extra_hosts", parse_host_map(opts.add_host, "--add-host"))
    put("links", parse_links(opts.link))
    put("dns", list(opts.dns))
    put("dns_opt", list(opts.dns_option))
    put("dns_search", list(opts.dns_search))
    put("cap_add", list(opts.cap_add))
    put("cap_drop", list(opts.cap_drop))
    put("security_opt", list(opts.security_opt))
    put("group_add", list(opts.group_add))
    put("devices", list(opts.device))
    put("device_cgroup_rules", list(opts.device_cgroup_rule))
    put("sysctls", parse_key_values(opts.sysctl, "--sysctl"))
    put("storage_opt", parse_key_values(opts.storage_opt, "--storage-opt"))
    put("cgroup_parent", opts.cgroup_parent)
    put("cgroupns", opts.cgroupns)
    put("ipc_mode", opts.ipc)
    put("pid_mode", opts.pid)
    put("isolation", opts.isolation)
    put("restart_policy", parse_restart(opts.restart) if opts.restart else None)
    if opts.gpus:
        kw["device_requests"] = parse_gpus(opts.gpus)
    if opts.log_driver or opts.log_opt:
        kw["log_config"] = LogConfig(
            type=opts.log_driver or "json-file",
            config=parse_key_values(opts.log_opt, "--log-opt"),
        )

    # resources; zero is a meaningful value for most of these
    for key, value in (
        ("blkio_weight", opts.blkio_weight),
        ("cpu_period", opts.cpu_period),
        ("cpu_quota", opts.cpu_quota),
        ("cpu_rt_period", opts.cpu_rt_period),
        ("cpu_rt_runtime", opts.cpu_rt_runtime),
        ("cpu_shares", opts.cpu_shares),
        ("mem_swappiness", opts.memory_swappiness),
        ("oom_score_adj", opts.oom_score_adj),
        ("pids_limit", opts.pids_limit),
    ):
        if value is not None:
            kw[key] = value
    put("cpuset_cpus", opts.cpuset_cpus)
    put("cpuset_mems", opts.cpuset_mems)
    if opts.cpus is not None:
        kw["nano_cpus"] = int(round(opts.cpus * 1e9))
    for key, flag, size in (
        ("mem_limit", "--memory", opts.memory),
        ("mem_reservation", "--memory-reservation", opts.memory_reservation),
        ("memswap_limit", "--memory-swap", opts.memory_swap),
        ("kernel_memory", "--kernel-memory", opts.kernel_memory),
    ):
        if size:
            kw[key] = _bytes(size, flag)
    put("oom_kill_disable", opts.oom_kill_disable)
    put("blkio_weight_device",
        parse_device_rates(opts.blkio_weight_device, "--blkio-weight-device", "Weight", as_bytes=False))
    put("device_read_bps",
        parse_device_rates(opts.device_read_bps, "--device-read-bps", "Rate", as_bytes=True))
    put("device_write_bps",
        parse_device_rates(opts.device_write_bps, "--device-write-bps", "Rate", as_bytes=True))
    put("device_read_iops",
        parse_device_rates(opts.device_read_iops, "--device-read-iops", "Rate", as_bytes=False))
    put("device_write_iops",
        parse_device_rates(opts.device_write_iops, "--device-write-iops", "Rate", as_bytes=False))

    return kw, _ignored(opts, RUN_IGNORED)


def build_kwargs(opts: BuildOptions) -> Tuple[Dict[str, Any], List[str]]:
    """Map BuildOptions onto ``APIClient.build`` keyword arguments."""
    kw: Dict[str, Any] = {
        "path": opts.path,
        "rm": opts.rm,
        "quiet": opts.quiet,
        "nocache": opts.no_cache,
        "pull": opts.pull,
        "forcerm": opts.force_rm,
        "gzip": opts.compress,
    }
    if opts.tag:
        kw["tag"] = opts.tag[0]
    if opts.file:
        kw["dockerfile"] = opts.file
    if opts.target:
        kw["target"] = opts.target
    if opts.network:
        kw["network_mode"] = opts.network
    if opts.isolation:
        kw["isolation"] = opts.isolation
    if opts.cache_from:
        kw["cache_from"] = list(opts.cache_from)
    if opts.build_arg:
        kw["buildargs"] = parse_key_values(opts.build_arg, "--build-arg", resolve_env=True)
    if opts.label:
        kw["labels"] = parse_key_values(opts.label, "--label")
    if opts.add_host:
        kw["extra_hosts"] = parse_host_map(opts.add_host, "--add-host")
    if opts.shm_size:
        kw["shmsize"] = _bytes(opts.shm_size, "--shm-size")

    limits: Dict[str, Any] = {}
    if opts.memory:
        limits["memory"] = _bytes(opts.memory, "--memory")
    if opts.memory_swap:
        limits["memswap"] = _bytes(opts.memory_swap, "--memory-swap")
    if opts.cpu_shares is not None:
        limits["cpushares"] = opts.cpu_shares
    if opts.cpuset_cpus:
        limits["cpusetcpus"] = opts.cpuset_cpus
    if limits:
        kw["container_limits"] = limits

    return kw, _ignored(opts, BUILD_IGNORED)


def split_tag(reference: str) -> Tuple[str, Optional[str]]:
    """``repo[:tag]`` -> (repo, tag); a colon inside a registry host is not a tag.

    Digest references (``repo@sha256:...``) have no tag.
    """
    if "@" in reference:
        return reference, None
    repo, sep, tag = reference.rpartition(":")
    if not sep or "/" in tag:
        return reference, None
    return repo, tag


def _bytes(value: str, flag: str) -> int:
    try:
        return int(parse_bytes(value))
    except (DockerException, ValueError):
        raise InvalidRequest(f"invalid {flag} value: {value!r}") from None
