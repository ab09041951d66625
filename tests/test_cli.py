"""Tests for the typer command surface.

A recording router is passed as the click context object, so these tests
check flag-to-request mapping without dispatching anything.
"""

import json

import pytest
from typer.testing import CliRunner

from rocker.cli import app
from rocker.models import (
    AttachRequest, BuildRequest, ContainerActionRequest, ExportRequest,
    ListRequest, LogsRequest, NotImplementedRequest, PullRequest,
    RemoteExecRequest, RemoveRequest, RunRequest,
)
from rocker.router import CommandResult, CommandRouter
from rocker_core.errors import RockerError


class RecordingRouter(CommandRouter):
    def __init__(self, result=None):
        super().__init__()
        self.requests = []
        self.result = result or CommandResult(ok=True)

    def handle(self, req):
        self.requests.append(req)
        return self.result


@pytest.fixture
def cli():
    return CliRunner()


def invoke(cli, args, router=None):
    router = router or RecordingRouter()
    result = cli.invoke(app, args, obj=router)
    return result, router


class TestRunMapping:
    """run / create flags land in a RunRequest."""

    def test_run_example(self, cli):
        """Positionals and interspersed options map field by field."""
        result, router = invoke(cli, ["run", "alpine", "echo", "hi", "--name", "foo", "--publish", "80:80"])

        assert result.exit_code == 0, result.output
        assert len(router.requests) == 1
        req = router.requests[0]
        assert isinstance(req, RunRequest)
        assert req.image == "alpine"
        assert req.command == "echo"
        assert req.arguments == ["hi"]
        assert req.options.name == "foo"
        assert req.options.publish == ["80:80"]
        assert req.start is True

    def test_create_does_not_start(self, cli):
        _, router = invoke(cli, ["create", "alpine"])

        req = router.requests[0]
        assert req.start is False
        assert req.command is None
        assert req.arguments == []

    def test_container_run_alias(self, cli):
        _, router = invoke(cli, ["container", "run", "-d", "alpine"])

        assert router.requests[0].options.detach is True

    def test_repeatable_flags_collect(self, cli):
        """Repeatable flags keep every value in order."""
        _, router = invoke(cli, [
            "run", "-e", "A=1", "-e", "B=2", "-v", "/a:/b", "-p", "80:80", "-p", "443:443", "alpine",
        ])

        opts = router.requests[0].options
        assert opts.env == ["A=1", "B=2"]
        assert opts.volume == ["/a:/b"]
        assert opts.publish == ["80:80", "443:443"]

    def test_scalar_flags_last_write_wins(self, cli):
        _, router = invoke(cli, ["run", "--name", "a", "--name", "b", "alpine"])

        assert router.requests[0].options.name == "b"

    def test_typed_flags(self, cli):
        """Numeric flags are coerced; booleans are switches."""
        _, router = invoke(cli, [
            "run", "--cpus", "1.5", "--memory-swappiness", "0", "--rm", "-it", "--pull", "never", "alpine",
        ])

        opts = router.requests[0].options
        assert opts.cpus == 1.5
        assert opts.memory_swappiness == 0
        assert opts.rm is True
        assert opts.interactive is True
        assert opts.tty is True
        assert opts.pull == "never"

    def test_double_dash_passes_command_flags(self, cli):
        _, router = invoke(cli, ["run", "alpine", "--", "ls", "-la"])

        req = router.requests[0]
        assert req.command == "ls"
        assert req.arguments == ["-la"]

    def test_bad_number_is_usage_error(self, cli):
        """Type errors are rejected before dispatch."""
        result, router = invoke(cli, ["run", "--cpu-shares", "lots", "alpine"])

        assert result.exit_code == 2
        assert router.requests == []


class TestOtherCommands:
    """Every other command builds exactly one request."""

    def test_build(self, cli):
        _, router = invoke(cli, ["build", "-t", "app:1", "-t", "app:latest", "--no-cache", "-f", "Dockerfile.dev", "."])

        req = router.requests[0]
        assert isinstance(req, BuildRequest)
        assert req.options.path == "."
        assert req.options.tag == ["app:1", "app:latest"]
        assert req.options.no_cache is True
        assert req.options.file == "Dockerfile.dev"
        assert req.options.rm is True

    def test_image_build_no_rm(self, cli):
        _, router = invoke(cli, ["image", "build", "--no-rm", "ctx"])

        assert router.requests[0].options.rm is False

    def test_pull(self, cli):
        _, router = invoke(cli, ["pull", "-a", "--platform", "linux/arm64", "-q", "alpine"])

        opts = router.requests[0].options
        assert isinstance(router.requests[0], PullRequest)
        assert opts.name == "alpine"
        assert opts.all_tags is True
        assert opts.platform == "linux/arm64"
        assert opts.quiet is True
        assert opts.disable_content_trust is True

    def test_ps_and_container_ls(self, cli):
        _, router = invoke(cli, ["ps", "-a"])
        _, router2 = invoke(cli, ["container", "ls", "-q"])

        assert router.requests[0] == ListRequest(kind="container", all=True, quiet=False)
        assert router2.requests[0] == ListRequest(kind="container", all=False, quiet=True)

    def test_images(self, cli):
        _, router = invoke(cli, ["images"])

        assert router.requests[0] == ListRequest(kind="image")

    def test_rm_and_rmi(self, cli):
        _, router = invoke(cli, ["rm", "-f", "web"])
        _, router2 = invoke(cli, ["image", "rm", "--no-prune", "alpine"])

        assert router.requests[0] == RemoveRequest(kind="container", target="web", force=True)
        assert router2.requests[0] == RemoveRequest(kind="image", target="alpine", no_prune=True)

    def test_logs(self, cli):
        _, router = invoke(cli, ["logs", "-f", "--tail", "10", "web"])

        req = router.requests[0]
        assert isinstance(req, LogsRequest)
        assert req.options.follow is True
        assert req.options.tail == 10

    def test_attach(self, cli):
        _, router = invoke(cli, ["container", "attach", "--no-sig-proxy", "web"])

        req = router.requests[0]
        assert isinstance(req, AttachRequest)
        assert req.options.sig_proxy is False

    def test_export(self, cli):
        _, router = invoke(cli, ["export", "deadbeef"])

        assert router.requests[0] == ExportRequest(container="deadbeef")

    def test_container_kill_signal(self, cli):
        _, router = invoke(cli, ["container", "kill", "-s", "SIGTERM", "web"])

        assert router.requests[0] == ContainerActionRequest(action="kill", container="web", signal="SIGTERM")

    def test_container_rename(self, cli):
        _, router = invoke(cli, ["container", "rename", "old", "new"])

        assert router.requests[0] == ContainerActionRequest(action="rename", container="old", new_name="new")

    def test_remote_exec(self, cli, tmp_path):
        _, router = invoke(cli, ["remote", "exec", "python", "print(1)"])
        _, router2 = invoke(cli, ["remote", "exec", "rust", "-f", str(tmp_path / "main.rs")])

        assert router.requests[0] == RemoteExecRequest(language="python", command="print(1)")
        assert router2.requests[0].file_path == tmp_path / "main.rs"
        assert router2.requests[0].command is None

    @pytest.mark.parametrize("args, group, action", [
        (["container", "commit", "web"], "container", "commit"),
        (["container", "cp", "web:/a", "./a"], "container", "cp"),
        (["container", "exec", "web", "ls"], "container", "exec"),
        (["container", "stats", "web"], "container", "stats"),
        (["container", "update", "web"], "container", "update"),
        (["image", "import", "fs.tar"], "image", "import"),
        (["image", "load", "img.tar"], "image", "load"),
        (["image", "push", "app:1"], "image", "push"),
        (["remote", "attach", "box"], "remote", "attach"),
        (["remote", "rm", "box"], "remote", "rm"),
    ])
    def test_placeholders(self, cli, args, group, action):
        _, router = invoke(cli, args)

        req = router.requests[0]
        assert isinstance(req, NotImplementedRequest)
        assert (req.group, req.action) == (group, action)


class TestExitCodes:
    """The router's result decides the process exit status."""

    def test_error_exit_code(self, cli):
        router = RecordingRouter(CommandResult(ok=False, error=RockerError("FILE_ERROR", "nope")))

        result, _ = invoke(cli, ["remote", "exec", "python", "-f", "missing.txt"], router)

        assert result.exit_code == 3

    def test_nonzero_exit_passthrough(self, cli):
        router = RecordingRouter(CommandResult(ok=False, error=RockerError("NONZERO_EXIT", "x", exit_code=42)))

        result, _ = invoke(cli, ["run", "alpine", "false"], router)

        assert result.exit_code == 42

    def test_not_implemented_end_to_end(self, cli):
        """A real router prints the notice and exits 0."""
        result = cli.invoke(app, ["image", "push", "app:1"], obj=CommandRouter())

        assert result.exit_code == 0
        assert "Command not implemented yet: image push" in result.output

    def test_remote_exec_without_code_end_to_end(self, cli):
        result = cli.invoke(app, ["remote", "exec", "python"], obj=CommandRouter())

        assert result.exit_code == 2
        assert "command or code needed!" in result.output

    def test_remote_exec_missing_file_end_to_end(self, cli, tmp_path):
        result = cli.invoke(app, ["remote", "exec", "python", "-f", str(tmp_path / "missing.txt")], obj=CommandRouter())

        assert result.exit_code == 3


class TestGlobalOptions:
    """--config, --audit-log, config and version."""

    def test_version(self, cli):
        result = cli.invoke(app, ["version"])

        assert result.exit_code == 0
        assert result.output.startswith("rocker ")

    def test_config_file(self, cli, tmp_path, monkeypatch):
        monkeypatch.delenv("ROCKER_CONFIG", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("version: 1\nregistry:\n  mirror: hub.example.org/\nengine:\n  timeout_s: 5\n")

        result = cli.invoke(app, ["--config", str(path), "config"])

        assert result.exit_code == 0, result.output
        assert "mirror: hub.example.org/" in result.output
        assert "timeout_s: 5" in result.output

    def test_invalid_config_is_usage_error(self, cli, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("version: 2\n")

        result = cli.invoke(app, ["--config", str(path), "config"])

        assert result.exit_code == 2
        assert "Unsupported config version" in result.output

    def test_audit_log_option(self, cli, tmp_path, monkeypatch):
        monkeypatch.delenv("ROCKER_CONFIG", raising=False)
        monkeypatch.setattr("rocker.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
        log = tmp_path / "events.jsonl"

        result = cli.invoke(app, ["--audit-log", str(log), "remote", "ls"])

        assert result.exit_code == 0
        types = [json.loads(line)["type"] for line in log.read_text().splitlines()]
        assert types == ["COMMAND_START", "COMMAND_END"]

    def test_config_section_not_a_mapping_is_usage_error(self, cli, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("version: 1\nengine: fast\n")

        result = cli.invoke(app, ["--config", str(path), "config"])

        assert result.exit_code == 2
        assert "'engine' must be a mapping" in result.output

    def test_unwritable_audit_log_is_file_error(self, cli, tmp_path, monkeypatch):
        """An audit log path that cannot be opened fails before any command runs."""
        monkeypatch.delenv("ROCKER_CONFIG", raising=False)
        monkeypatch.setattr("rocker.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

        result = cli.invoke(app, ["--audit-log", str(tmp_path), "remote", "ls"])

        assert result.exit_code == 3
        assert "cannot open audit log" in result.output


class TestHelp:
    @pytest.mark.parametrize("args, summary", [
        (["rm", "--help"], "Remove a container"),
        (["image", "rm", "--help"], "Remove an image"),
        (["container", "stop", "--help"], "Stop a running container"),
    ])
    def test_single_target_summaries(self, cli, args, summary):
        result, _ = invoke(cli, args)

        assert result.exit_code == 0
        assert summary in result.output
        assert "one or more" not in result.output
