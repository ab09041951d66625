from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Optional
import typer
import yaml

from rocker.config import dump_effective_config, load_config, resolve_config_path
from rocker.models import (
    AttachOptions, AttachRequest, BuildOptions, BuildRequest,
    ContainerActionRequest, ExportRequest, HistoryRequest, InfoRequest,
    InspectRequest, ListRequest, LogsOptions, LogsRequest,
    NotImplementedRequest, PruneRequest, PullOptions, PullRequest,
    RemoteExecRequest, RemoteListRequest, RemoveRequest, RunOptions,
    RunRequest, SaveRequest, TagRequest,
)
from rocker.router import CommandRouter
from rocker_core.errors import EXIT_CODES

__version__ = "0.1.0"

app = typer.Typer(help="rocker - a Docker-style command line client", no_args_is_help=True)
container_app = typer.Typer(help="Manage containers", no_args_is_help=True)
image_app = typer.Typer(help="Manage images", no_args_is_help=True)
remote_app = typer.Typer(help="Run code on the remote execution service", no_args_is_help=True)

app.add_typer(container_app, name="container")
app.add_typer(image_app, name="image")
app.add_typer(remote_app, name="remote")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file (default: $ROCKER_CONFIG or ~/.rocker/config.yaml)"),
    audit_log: Optional[Path] = typer.Option(None, "--audit-log", help="Append JSON-lines audit events to this file"),
) -> None:
    """
    Parse Docker-style commands and forward them to the Docker engine
    or the remote execution service
    """
    if ctx.obj is not None:
        return
    try:
        cfg = load_config(resolve_config_path(config))
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(code=EXIT_CODES["INVALID_REQUEST"])
    if audit_log is not None:
        cfg = replace(cfg, events_path=audit_log)
    try:
        ctx.obj = CommandRouter(cfg)
    except OSError as e:
        typer.echo(f"Error: cannot open audit log: {e}", err=True)
        raise typer.Exit(code=EXIT_CODES["FILE_ERROR"])


def _dispatch(ctx: typer.Context, req: Any) -> None:
    router: CommandRouter = ctx.obj
    result = router.handle(req)
    if not result.ok:
        raise typer.Exit(code=result.exit_code)


def _items(values: Optional[List[str]]) -> List[str]:
    return list(values or [])


# =========================================================================
# run / create
# =========================================================================

def _run_command(start: bool) -> Callable[..., None]:
    def run_or_create(
        ctx: typer.Context,
        image: str = typer.Argument(..., help="Image to run"),
        command: Optional[str] = typer.Argument(None, help="Command to run"),
        arguments: Optional[List[str]] = typer.Argument(None, help="Arguments of command"),
        add_host: Optional[List[str]] = typer.Option(None, "--add-host", help="Add a custom host-to-IP mapping (host:ip)"),
        attach: Optional[List[str]] = typer.Option(None, "--attach", "-a", help="Attach to STDIN, STDOUT or STDERR"),
        blkio_weight: Optional[int] = typer.Option(None, "--blkio-weight", help="Block IO weight between 10 and 1000, or 0 to disable"),
        blkio_weight_device: Optional[List[str]] = typer.Option(None, "--blkio-weight-device", help="Block IO weight for a device"),
        cap_add: Optional[List[str]] = typer.Option(None, "--cap-add", help="Add Linux capabilities"),
        cap_drop: Optional[List[str]] = typer.Option(None, "--cap-drop", help="Drop Linux capabilities"),
        cgroup_parent: Optional[str] = typer.Option(None, "--cgroup-parent", help="Optional parent cgroup for the container"),
        cgroupns: Optional[str] = typer.Option(None, "--cgroupns", help="Cgroup namespace to use (host|private)"),
        cidfile: Optional[str] = typer.Option(None, "--cidfile", help="Write the container ID to the file"),
        cpu_period: Optional[int] = typer.Option(None, "--cpu-period", help="Limit CPU CFS (Completely Fair Scheduler) period"),
        cpu_quota: Optional[int] = typer.Option(None, "--cpu-quota", help="Limit CPU CFS quota"),
        cpu_rt_period: Optional[int] = typer.Option(None, "--cpu-rt-period", help="Limit CPU real-time period in microseconds"),
        cpu_rt_runtime: Optional[int] = typer.Option(None, "--cpu-rt-runtime", help="Limit CPU real-time runtime in microseconds"),
        cpu_shares: Optional[int] = typer.Option(None, "--cpu-shares", "-c", help="CPU shares (relative weight)"),
        cpus: Optional[float] = typer.Option(None, "--cpus", help="Number of CPUs"),
        cpuset_cpus: Optional[str] = typer.Option(None, "--cpuset-cpus", help="CPUs in which to allow execution (0-3, 0,1)"),
        cpuset_mems: Optional[str] = typer.Option(None, "--cpuset-mems", help="MEMs in which to allow execution (0-3, 0,1)"),
        detach: bool = typer.Option(False, "--detach", "-d", help="Run container in background and print container ID"),
        detach_keys: Optional[str] = typer.Option(None, "--detach-keys", help="Override the key sequence for detaching a container"),
        device: Optional[List[str]] = typer.Option(None, "--device", help="Add a host device to the container"),
        device_cgroup_rule: Optional[List[str]] = typer.Option(None, "--device-cgroup-rule", help="Add a rule to the cgroup allowed devices list"),
        device_read_bps: Optional[List[str]] = typer.Option(None, "--device-read-bps", help="Limit read rate (bytes per second) from a device"),
        device_read_iops: Optional[List[str]] = typer.Option(None, "--device-read-iops", help="Limit read rate (IO per second) from a device"),
        device_write_bps: Optional[List[str]] = typer.Option(None, "--device-write-bps", help="Limit write rate (bytes per second) to a device"),
        device_write_iops: Optional[List[str]] = typer.Option(None, "--device-write-iops", help="Limit write rate (IO per second) to a device"),
        disable_content_trust: bool = typer.Option(False, "--disable-content-trust", help="Skip image verification"),
        dns: Optional[List[str]] = typer.Option(None, "--dns", help="Set custom DNS servers"),
        dns_option: Optional[List[str]] = typer.Option(None, "--dns-option", help="Set DNS options"),
        dns_search: Optional[List[str]] = typer.Option(None, "--dns-search", help="Set custom DNS search domains"),
        domainname: Optional[str] = typer.Option(None, "--domainname", help="Container NIS domain name"),
        entrypoint: Optional[str] = typer.Option(None, "--entrypoint", help="Overwrite the default ENTRYPOINT of the image"),
        env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="Set environment variables"),
        env_file: Optional[List[str]] = typer.Option(None, "--env-file", help="Read in a file of environment variables"),
        expose: Optional[List[str]] = typer.Option(None, "--expose", help="Expose a port or a range of ports"),
        gpus: Optional[str] = typer.Option(None, "--gpus", help="GPU devices to add to the container ('all' to pass all GPUs)"),
        group_add: Optional[List[str]] = typer.Option(None, "--group-add", help="Add additional groups to join"),
        health_cmd: Optional[str] = typer.Option(None, "--health-cmd", help="Command to run to check health"),
        health_interval: Optional[str] = typer.Option(None, "--health-interval", help="Time between running the check (ms|s|m|h)"),
        health_retries: Optional[int] = typer.Option(None, "--health-retries", help="Consecutive failures needed to report unhealthy"),
        health_start_period: Optional[str] = typer.Option(None, "--health-start-period", help="Start period for the container to initialize"),
        health_timeout: Optional[str] = typer.Option(None, "--health-timeout", help="Maximum time to allow one check to run (ms|s|m|h)"),
        hostname: Optional[str] = typer.Option(None, "--hostname", "-H", help="Container host name"),
        init: bool = typer.Option(False, "--init", help="Run an init inside the container"),
        interactive: bool = typer.Option(False, "--interactive", "-i", help="Keep STDIN open even if not attached"),
        ip: Optional[str] = typer.Option(None, "--ip", help="IPv4 address"),
        ip6: Optional[str] = typer.Option(None, "--ip6", help="IPv6 address"),
        ipc: Optional[str] = typer.Option(None, "--ipc", help="IPC mode to use"),
        isolation: Optional[str] = typer.Option(None, "--isolation", help="Container isolation technology"),
        kernel_memory: Optional[str] = typer.Option(None, "--kernel-memory", help="Kernel memory limit"),
        label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Set meta data on a container"),
        label_file: Optional[List[str]] = typer.Option(None, "--label-file", help="Read in a line delimited file of labels"),
        link: Optional[List[str]] = typer.Option(None, "--link", help="Add link to another container"),
        link_local_ip: Optional[List[str]] = typer.Option(None, "--link-local-ip", help="Container IPv4/IPv6 link-local addresses"),
        log_driver: Optional[str] = typer.Option(None, "--log-driver", help="Logging driver for the container"),
        log_opt: Optional[List[str]] = typer.Option(None, "--log-opt", help="Log driver options"),
        mac_address: Optional[str] = typer.Option(None, "--mac-address", help="Container MAC address"),
        memory: Optional[str] = typer.Option(None, "--memory", "-m", help="Memory limit"),
        memory_reservation: Optional[str] = typer.Option(None, "--memory-reservation", help="Memory soft limit"),
        memory_swap: Optional[str] = typer.Option(None, "--memory-swap", help="Swap limit equal to memory plus swap: '-1' to enable unlimited swap"),
        memory_swappiness: Optional[int] = typer.Option(None, "--memory-swappiness", help="Tune container memory swappiness (0 to 100)"),
        mount: Optional[List[str]] = typer.Option(None, "--mount", help="Attach a filesystem mount to the container"),
        name: Optional[str] = typer.Option(None, "--name", help="Assign a name to the container"),
        network: Optional[str] = typer.Option(None, "--network", help="Connect a container to a network"),
        network_alias: Optional[List[str]] = typer.Option(None, "--network-alias", help="Add network-scoped alias for the container"),
        no_healthcheck: bool = typer.Option(False, "--no-healthcheck", help="Disable any container-specified HEALTHCHECK"),
        oom_kill_disable: bool = typer.Option(False, "--oom-kill-disable", help="Disable OOM Killer"),
        oom_score_adj: Optional[int] = typer.Option(None, "--oom-score-adj", help="Tune host's OOM preferences (-1000 to 1000)"),
        pid: Optional[str] = typer.Option(None, "--pid", help="PID namespace to use"),
        pids_limit: Optional[int] = typer.Option(None, "--pids-limit", help="Tune container pids limit (-1 for unlimited)"),
        platform: Optional[str] = typer.Option(None, "--platform", help="Set platform if server is multi-platform capable"),
        privileged: bool = typer.Option(False, "--privileged", help="Give extended privileges to this container"),
        publish: Optional[List[str]] = typer.Option(None, "--publish", "-p", help="Publish a container's port(s) to the host"),
        publish_all: bool = typer.Option(False, "--publish-all", "-P", help="Publish all exposed ports to random ports"),
        pull: Optional[str] = typer.Option(None, "--pull", help="Pull image before running (always|missing|never)"),
        read_only: bool = typer.Option(False, "--read-only", help="Mount the container's root filesystem as read only"),
        restart: Optional[str] = typer.Option(None, "--restart", help="Restart policy to apply when a container exits"),
        rm: bool = typer.Option(False, "--rm", help="Automatically remove the container when it exits"),
        security_opt: Optional[List[str]] = typer.Option(None, "--security-opt", help="Security options"),
        storage_opt: Optional[List[str]] = typer.Option(None, "--storage-opt", help="Set the container's storage driver options per-mount"),
        stop_signal: Optional[str] = typer.Option(None, "--stop-signal", help="Stop signal to use"),
        stop_timeout: Optional[int] = typer.Option(None, "--stop-timeout", help="Timeout (in seconds) to stop the container"),
        sysctl: Optional[List[str]] = typer.Option(None, "--sysctl", help="Kernel parameters to set in the container"),
        tty: bool = typer.Option(False, "--tty", "-t", help="Allocate a pseudo-TTY"),
        user: Optional[str] = typer.Option(None, "--user", "-u", help="Username or UID (format: <name|uid>[:<group|gid>])"),
        volume: Optional[List[str]] = typer.Option(None, "--volume", "-v", help="Bind mount a volume"),
        workdir: Optional[str] = typer.Option(None, "--workdir", "-w", help="Working directory inside the container"),
    ) -> None:
        options = RunOptions(
            add_host=_items(add_host),
            attach=_items(attach),
            blkio_weight=blkio_weight,
            blkio_weight_device=_items(blkio_weight_device),
            cap_add=_items(cap_add),
            cap_drop=_items(cap_drop),
            cgroup_parent=cgroup_parent,
            cgroupns=cgroupns,
            cidfile=cidfile,
            cpu_period=cpu_period,
            cpu_quota=cpu_quota,
            cpu_rt_period=cpu_rt_period,
            cpu_rt_runtime=cpu_rt_runtime,
            cpu_shares=cpu_shares,
            cpus=cpus,
            cpuset_cpus=cpuset_cpus,
            cpuset_mems=cpuset_mems,
            detach=detach,
            detach_keys=detach_keys,
            device=_items(device),
            device_cgroup_rule=_items(device_cgroup_rule),
            device_read_bps=_items(device_read_bps),
            device_read_iops=_items(device_read_iops),
            device_write_bps=_items(device_write_bps),
            device_write_iops=_items(device_write_iops),
            disable_content_trust=disable_content_trust,
            dns=_items(dns),
            dns_option=_items(dns_option),
            dns_search=_items(dns_search),
            domainname=domainname,
            entrypoint=entrypoint,
            env=_items(env),
            env_file=_items(env_file),
            expose=_items(expose),
            gpus=gpus,
            group_add=_items(group_add),
            health_cmd=health_cmd,
            health_interval=health_interval,
            health_retries=health_retries,
            health_start_period=health_start_period,
            health_timeout=health_timeout,
            hostname=hostname,
            init=init,
            interactive=interactive,
            ip=ip,
            ip6=ip6,
            ipc=ipc,
            isolation=isolation,
            kernel_memory=kernel_memory,
            label=_items(label),
            label_file=_items(label_file),
            link=_items(link),
            link_local_ip=_items(link_local_ip),
            log_driver=log_driver,
            log_opt=_items(log_opt),
            mac_address=mac_address,
            memory=memory,
            memory_reservation=memory_reservation,
            memory_swap=memory_swap,
            memory_swappiness=memory_swappiness,
            mount=_items(mount),
            name=name,
            network=network,
            network_alias=_items(network_alias),
            no_healthcheck=no_healthcheck,
            oom_kill_disable=oom_kill_disable,
            oom_score_adj=oom_score_adj,
            pid=pid,
            pids_limit=pids_limit,
            platform=platform,
            privileged=privileged,
            publish=_items(publish),
            publish_all=publish_all,
            pull=pull,
            read_only=read_only,
            restart=restart,
            rm=rm,
            security_opt=_items(security_opt),
            storage_opt=_items(storage_opt),
            stop_signal=stop_signal,
            stop_timeout=stop_timeout,
            sysctl=_items(sysctl),
            tty=tty,
            user=user,
            volume=_items(volume),
            workdir=workdir,
        )
        _dispatch(ctx, RunRequest(
            image=image,
            command=command,
            arguments=_items(arguments),
            options=options,
            start=start,
        ))
    return run_or_create


app.command("run", help="Run a command in a new container")(_run_command(start=True))
app.command("create", help="Create a new container")(_run_command(start=False))
container_app.command("run", help="Run a command in a new container")(_run_command(start=True))
container_app.command("create", help="Create a new container")(_run_command(start=False))


# =========================================================================
# build / pull
# =========================================================================

def build(
    ctx: typer.Context,
    path_or_url: str = typer.Argument(..., metavar="PATH | URL", help="Path to the context directory or URL for the build"),
    add_host: Optional[List[str]] = typer.Option(None, "--add-host", help="Add a custom host-to-IP mapping (host:ip)"),
    build_arg: Optional[List[str]] = typer.Option(None, "--build-arg", help="Set build-time variables"),
    cache_from: Optional[List[str]] = typer.Option(None, "--cache-from", help="Images to consider as cache sources"),
    cgroup_parent: Optional[str] = typer.Option(None, "--cgroup-parent", help="Optional parent cgroup for the container"),
    compress: bool = typer.Option(False, "--compress", help="Compress the build context using gzip"),
    cpu_period: Optional[int] = typer.Option(None, "--cpu-period", help="Limit the CPU CFS period"),
    cpu_quota: Optional[int] = typer.Option(None, "--cpu-quota", help="Limit the CPU CFS quota"),
    cpu_shares: Optional[int] = typer.Option(None, "--cpu-shares", "-c", help="CPU shares (relative weight)"),
    cpuset_cpus: Optional[str] = typer.Option(None, "--cpuset-cpus", help="CPUs in which to allow execution (0-3, 0,1)"),
    cpuset_mems: Optional[str] = typer.Option(None, "--cpuset-mems", help="MEMs in which to allow execution (0-3, 0,1)"),
    disable_content_trust: bool = typer.Option(False, "--disable-content-trust", help="Skip image verification"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Name of the Dockerfile (Default is 'PATH/Dockerfile')"),
    force_rm: bool = typer.Option(False, "--force-rm", help="Always remove intermediate containers"),
    iidfile: Optional[str] = typer.Option(None, "--iidfile", help="Write the image ID to the file"),
    isolation: Optional[str] = typer.Option(None, "--isolation", help="Container isolation technology"),
    label: Optional[List[str]] = typer.Option(None, "--label", help="Set metadata for an image"),
    memory: Optional[str] = typer.Option(None, "--memory", "-m", help="Memory limit"),
    memory_swap: Optional[str] = typer.Option(None, "--memory-swap", help="Swap limit equal to memory plus swap: '-1' to enable unlimited swap"),
    network: Optional[str] = typer.Option(None, "--network", help="Set the networking mode for the RUN instructions during build"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not use cache when building the image"),
    pull: bool = typer.Option(False, "--pull", help="Always attempt to pull a newer version of the image"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress the build output and print image ID on success"),
    rm: bool = typer.Option(True, "--rm/--no-rm", help="Remove intermediate containers after a successful build"),
    security_opt: Optional[List[str]] = typer.Option(None, "--security-opt", help="Security options"),
    shm_size: Optional[str] = typer.Option(None, "--shm-size", help="Size of /dev/shm"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Name and optionally a tag in the 'name:tag' format"),
    target: Optional[str] = typer.Option(None, "--target", help="Set the target build stage to build"),
    ulimit: Optional[List[str]] = typer.Option(None, "--ulimit", help="Ulimit options"),
) -> None:
    options = BuildOptions(
        path=path_or_url,
        add_host=_items(add_host),
        build_arg=_items(build_arg),
        cache_from=_items(cache_from),
        cgroup_parent=cgroup_parent,
        compress=compress,
        cpu_period=cpu_period,
        cpu_quota=cpu_quota,
        cpu_shares=cpu_shares,
        cpuset_cpus=cpuset_cpus,
        cpuset_mems=cpuset_mems,
        disable_content_trust=disable_content_trust,
        file=file,
        force_rm=force_rm,
        iidfile=iidfile,
        isolation=isolation,
        label=_items(label),
        memory=memory,
        memory_swap=memory_swap,
        network=network,
        no_cache=no_cache,
        pull=pull,
        quiet=quiet,
        rm=rm,
        security_opt=_items(security_opt),
        shm_size=shm_size,
        tag=_items(tag),
        target=target,
        ulimit=_items(ulimit),
    )
    _dispatch(ctx, BuildRequest(options=options))


def pull(
    ctx: typer.Context,
    name: str = typer.Argument(..., metavar="NAME[:TAG|@DIGEST]", help="The name of the image to pull"),
    all_tags: bool = typer.Option(False, "--all-tags", "-a", help="Download all tagged images in the repository"),
    disable_content_trust: bool = typer.Option(True, "--disable-content-trust/--enable-content-trust", help="Skip image verification"),
    platform: Optional[str] = typer.Option(None, "--platform", help="Set platform if server is multi-platform capable"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress verbose output"),
) -> None:
    _dispatch(ctx, PullRequest(options=PullOptions(
        name=name,
        all_tags=all_tags,
        disable_content_trust=disable_content_trust,
        platform=platform,
        quiet=quiet,
    )))


app.command("build", help="Build an image from a Dockerfile")(build)
image_app.command("build", help="Build an image from a Dockerfile")(build)
app.command("pull", help="Pull an image or a repository from a registry")(pull)
image_app.command("pull", help="Pull an image or a repository from a registry")(pull)


# =========================================================================
# listing / removal / inspection
# =========================================================================

def ps(
    ctx: typer.Context,
    all: bool = typer.Option(False, "--all", "-a", help="Show all containers (default shows just running)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only display container IDs"),
) -> None:
    _dispatch(ctx, ListRequest(kind="container", all=all, quiet=quiet))


def images(
    ctx: typer.Context,
    all: bool = typer.Option(False, "--all", "-a", help="Show all images (default hides intermediate images)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show image IDs"),
) -> None:
    _dispatch(ctx, ListRequest(kind="image", all=all, quiet=quiet))


def rm(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container ID or name"),
    force: bool = typer.Option(False, "--force", "-f", help="Force the removal of a running container"),
    volumes: bool = typer.Option(False, "--volumes", "-v", help="Remove anonymous volumes associated with the container"),
) -> None:
    _dispatch(ctx, RemoveRequest(kind="container", target=container, force=force, volumes=volumes))


def rmi(
    ctx: typer.Context,
    image: str = typer.Argument(..., help="Image to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Force removal of the image"),
    no_prune: bool = typer.Option(False, "--no-prune", help="Do not delete untagged parents"),
) -> None:
    _dispatch(ctx, RemoveRequest(kind="image", target=image, force=force, no_prune=no_prune))


def container_inspect(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
) -> None:
    _dispatch(ctx, InspectRequest(kind="container", target=container))


def image_inspect(
    ctx: typer.Context,
    image: str = typer.Argument(..., help="Image name or ID"),
) -> None:
    _dispatch(ctx, InspectRequest(kind="image", target=image))


app.command("ps", help="List containers")(ps)
container_app.command("ls", help="List containers")(ps)
app.command("images", help="List images")(images)
image_app.command("ls", help="List images")(images)
app.command("rm", help="Remove a container")(rm)
container_app.command("rm", help="Remove a container")(rm)
app.command("rmi", help="Remove an image")(rmi)
image_app.command("rm", help="Remove an image")(rmi)
container_app.command("inspect", help="Display detailed information on a container")(container_inspect)
image_app.command("inspect", help="Display detailed information on an image")(image_inspect)


# =========================================================================
# streams: logs / attach / export / save
# =========================================================================

def logs(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    follow: bool = typer.Option(False, "--follow", "-f", help="Follow log output"),
    tail: Optional[int] = typer.Option(None, "--tail", "-n", help="Number of lines to show from the end of the logs"),
    timestamps: bool = typer.Option(False, "--timestamps", "-t", help="Show timestamps"),
) -> None:
    _dispatch(ctx, LogsRequest(options=LogsOptions(
        container=container,
        follow=follow,
        tail=tail,
        timestamps=timestamps,
    )))


def attach(
    ctx: typer.Context,
    container: str = typer.Argument(..., metavar="CONTAINER", help="The container to attach to"),
    detach_keys: Optional[str] = typer.Option(None, "--detach-keys", help="Override the key sequence for detaching a container"),
    no_stdin: bool = typer.Option(False, "--no-stdin", help="Do not attach STDIN"),
    sig_proxy: bool = typer.Option(True, "--sig-proxy/--no-sig-proxy", help="Proxy all received signals to the process"),
) -> None:
    _dispatch(ctx, AttachRequest(options=AttachOptions(
        container=container,
        detach_keys=detach_keys,
        no_stdin=no_stdin,
        sig_proxy=sig_proxy,
    )))


def export(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of <container>.tar"),
) -> None:
    _dispatch(ctx, ExportRequest(container=container, output=output))


def save(
    ctx: typer.Context,
    image: str = typer.Argument(..., help="Image name or ID"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of <image>.tar"),
) -> None:
    _dispatch(ctx, SaveRequest(image=image, output=output))


app.command("logs", help="Fetch the logs of a container")(logs)
container_app.command("logs", help="Fetch the logs of a container")(logs)
app.command("attach", help="Attach local standard output and error streams to a running container")(attach)
container_app.command("attach", help="Attach local standard output and error streams to a running container")(attach)
app.command("export", help="Export a container's filesystem as a tar archive")(export)
container_app.command("export", help="Export a container's filesystem as a tar archive")(export)
image_app.command("save", help="Save an image to a tar archive")(save)


# =========================================================================
# container lifecycle
# =========================================================================

def _container_action(action: str) -> Callable[..., None]:
    def command(
        ctx: typer.Context,
        container: str = typer.Argument(..., help="Container name or ID"),
    ) -> None:
        _dispatch(ctx, ContainerActionRequest(action=action, container=container))
    return command


for _action, _help in (
    ("start", "Start a stopped container"),
    ("pause", "Pause all processes within a container"),
    ("unpause", "Unpause all processes within a container"),
    ("diff", "Inspect changes to files or directories on a container's filesystem"),
    ("top", "Display the running processes of a container"),
    ("port", "List port mappings or a specific mapping for the container"),
    ("wait", "Block until a container stops, then print its exit code"),
):
    container_app.command(_action, help=_help)(_container_action(_action))


@container_app.command("stop")
def container_stop(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    time: Optional[int] = typer.Option(None, "--time", "-t", help="Seconds to wait before killing the container"),
) -> None:
    """Stop a running container"""
    _dispatch(ctx, ContainerActionRequest(action="stop", container=container, timeout=time))


@container_app.command("restart")
def container_restart(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    time: Optional[int] = typer.Option(None, "--time", "-t", help="Seconds to wait before killing the container"),
) -> None:
    """Restart a container"""
    _dispatch(ctx, ContainerActionRequest(action="restart", container=container, timeout=time))


@container_app.command("kill")
def container_kill(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    signal: Optional[str] = typer.Option(None, "--signal", "-s", help="Signal to send to the container"),
) -> None:
    """Kill a running container"""
    _dispatch(ctx, ContainerActionRequest(action="kill", container=container, signal=signal))


@container_app.command("rename")
def container_rename(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Current container name or ID"),
    new_name: str = typer.Argument(..., help="New container name"),
) -> None:
    """Rename a container"""
    _dispatch(ctx, ContainerActionRequest(action="rename", container=container, new_name=new_name))


@container_app.command("prune")
def container_prune(ctx: typer.Context) -> None:
    """Remove all stopped containers"""
    _dispatch(ctx, PruneRequest(kind="container"))


@container_app.command("commit")
def container_commit(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    repository: Optional[str] = typer.Argument(None, help="Repository name for new image"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
) -> None:
    """Create a new image from a container's changes"""
    _dispatch(ctx, NotImplementedRequest(group="container", action="commit", target=container))


@container_app.command("cp")
def container_cp(
    ctx: typer.Context,
    src: str = typer.Argument(..., help="Source path"),
    dest: str = typer.Argument(..., help="Destination path"),
) -> None:
    """Copy files/folders between a container and the local filesystem"""
    _dispatch(ctx, NotImplementedRequest(group="container", action="cp", target=src))


@container_app.command("exec")
def container_exec(
    ctx: typer.Context,
    container: str = typer.Argument(..., help="Container name or ID"),
    command: str = typer.Argument(..., help="Command to execute"),
) -> None:
    """Run a command in a running container"""
    _dispatch(ctx, NotImplementedRequest(group="container", action="exec", target=container))


def _placeholder(group: str, action: str) -> Callable[..., None]:
    def command(
        ctx: typer.Context,
        target: str = typer.Argument(..., metavar="TARGET", help="Container, image or file the command applies to"),
    ) -> None:
        _dispatch(ctx, NotImplementedRequest(group=group, action=action, target=target))
    return command


for _action, _help in (
    ("stats", "Display a live stream of container(s) resource usage statistics"),
    ("update", "Update configuration of a container"),
):
    container_app.command(_action, help=_help)(_placeholder("container", _action))


# =========================================================================
# images
# =========================================================================

@image_app.command("tag")
def image_tag(
    ctx: typer.Context,
    source: str = typer.Argument(..., metavar="SOURCE_IMAGE[:TAG]"),
    target: str = typer.Argument(..., metavar="TARGET_IMAGE[:TAG]"),
) -> None:
    """Create a tag TARGET_IMAGE that refers to SOURCE_IMAGE"""
    _dispatch(ctx, TagRequest(source=source, target=target))


@image_app.command("history")
def image_history(
    ctx: typer.Context,
    image: str = typer.Argument(..., help="Image name or ID"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show image IDs"),
) -> None:
    """Show the history of an image"""
    _dispatch(ctx, HistoryRequest(image=image, quiet=quiet))


@image_app.command("prune")
def image_prune(
    ctx: typer.Context,
    all: bool = typer.Option(False, "--all", "-a", help="Remove all unused images, not just dangling ones"),
) -> None:
    """Remove unused images"""
    _dispatch(ctx, PruneRequest(kind="image", all=all))


for _action, _help in (
    ("import", "Import the contents from a tarball to create a filesystem image"),
    ("load", "Load an image from a tar archive"),
    ("push", "Push an image or a repository to a registry"),
):
    image_app.command(_action, help=_help)(_placeholder("image", _action))


# =========================================================================
# remote
# =========================================================================

@remote_app.command("exec")
def remote_exec(
    ctx: typer.Context,
    language: str = typer.Argument(..., help="Runtime to execute the code with (e.g. rust, python)"),
    command: Optional[str] = typer.Argument(None, help="Inline source code to execute"),
    file_path: Optional[Path] = typer.Option(None, "--file-path", "-f", help="Read the source code from this file"),
) -> None:
    """Run source code on the remote execution service"""
    _dispatch(ctx, RemoteExecRequest(language=language, command=command, file_path=file_path))


@remote_app.command("ls")
def remote_ls(ctx: typer.Context) -> None:
    """List the languages supported by the execution service"""
    _dispatch(ctx, RemoteListRequest())


for _action in ("attach", "logs", "inspect", "start", "stop", "kill", "rm"):
    remote_app.command(_action, help=f"Remote {_action} (not implemented)")(_placeholder("remote", _action))


# =========================================================================
# misc
# =========================================================================

@app.command("info")
def info(ctx: typer.Context) -> None:
    """Display system-wide information"""
    _dispatch(ctx, InfoRequest())


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Print the effective configuration"""
    router: CommandRouter = ctx.obj
    typer.echo(dump_effective_config(router.cfg), nl=False)


@app.command("version")
def version() -> None:
    """Show the rocker version"""
    typer.echo(f"rocker {__version__}")


if __name__ == "__main__":
    app()
