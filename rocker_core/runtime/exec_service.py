from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import json
import requests

from rocker_core.errors import DecodeError

DEFAULT_RUNNER_URL = "https://cpprunner.aiursoft.cn/runner/run"

# Hardcoded; keep in sync with the runner's language list.
SUPPORTED_LANGUAGES: Tuple[str, ...] = (
    "C (gcc 9.5.0)",
    "C++ (GNU G++, stdc++20)",
    "CUDA 11.6 (on Ubuntu 20.04)",
    "C# (.NET 7.0)",
    "Go (Golang 1.21.5)",
    "Rust (1.74.1)",
    "Javascript (Node.js v21)",
    "TypeScript (4.9.3, node 16.8.1)",
    "Python (CPython 3.11)",
    "Python with PyTorch (Pytorch 2.3.0; cuda 11.8; cudnn 8)",
    "Bash (on Ubuntu 24.04)",
    "PowerShell Core (Ubuntu 22.04)",
    "Swift (5.8.1)",
    "Java (OpenJDK 23)",
    "Ruby (3.2.2)",
    "PHP (8.3.0)",
    "Perl (5.39.5)",
    "Lua (5.4)",
    "Haskell (GHC 9.8.1)",
    "Lisp (rigetti/lisp)",
)

@dataclass(frozen=True)
class ExecutionRequest:
    language: str
    code: str

@dataclass(frozen=True)
class ExecutionResult:
    result_code: int
    output: str
    error: str

class ExecutionClient:
    def __init__(self, runner_url: str = DEFAULT_RUNNER_URL, timeout_s: int = 30) -> None:
        self.runner_url = runner_url
        self.timeout_s = timeout_s

    def run(self, req: ExecutionRequest) -> ExecutionResult:
        """
        Submit source code to the runner and decode its verdict.

        Raises requests.RequestException on transport/HTTP failures and
        DecodeError when the body is not the expected JSON document.
        """
        resp = requests.post(
            self.runner_url,
            params={"lang": req.language},
            headers={"Content-Type": "text/plain"},
            data=req.code.encode("utf-8"),
            timeout=self.timeout_s,
        )
        resp.raise_for_status()
        return decode_result(resp.text)


def decode_result(body: str) -> ExecutionResult:
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON from runner: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError("invalid response from runner: expected an object")
    try:
        return ExecutionResult(
            result_code=int(data["resultCode"]),
            output=str(data["output"] or ""),
            error=str(data["error"] or ""),
        )
    except KeyError as e:
        raise DecodeError(f"invalid response from runner: missing {e}") from e
    except (TypeError, ValueError) as e:
        raise DecodeError(f"invalid response from runner: {e}") from e
