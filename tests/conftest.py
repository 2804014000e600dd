"""Pytest hooks to generate fixtures while running the specs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from trustbox_spec.host import LedgerHost
from trustbox_spec.state_digest import compute_state_digest
from trustbox_spec.state_transition import TransitionResult, apply_call
from trustbox_spec.types import ContractCall, LedgerState
from tools.fixtures_io import call_to_json, state_to_json, value_to_json

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}

StateTestGroup = Callable[..., tuple[LedgerState, TransitionResult]]


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def state_test_group() -> StateTestGroup:
    """Apply a call, collect it as a fixture case, and hand back the outcome."""

    def _state_test_group(
        rel_path: str,
        name: str,
        pre_state: LedgerState,
        call: ContractCall,
        host: Optional[LedgerHost] = None,
    ) -> tuple[LedgerState, TransitionResult]:
        pre_json = state_to_json(pre_state)
        post_state, result = apply_call(pre_state, call, host)
        post_json = state_to_json(post_state)
        # Fixtures replay against the default host only.
        if host is None:
            _STATE_CASES.setdefault(rel_path, []).append(
                {
                    "name": name,
                    "pre_state": pre_json,
                    "call": call_to_json(call),
                    "expected": {
                        "ok": result.ok,
                        "error": result.error.code.name if result.error else None,
                        "value": value_to_json(result.value),
                        "post_state": post_json,
                        "state_digest": compute_state_digest(post_json),
                    },
                }
            )
        return post_state, result

    return _state_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
