#!/usr/bin/env python3
"""
TrustBox Scenario Runner

Drives YAML scenarios (create / approve / cancel / counter steps) through the
ledger spec and reports PASS/FAIL per step. Calls are never retried.
"""

import glob
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from trustbox_spec import queries  # noqa: E402
from trustbox_spec.account_model import balance_of  # noqa: E402
from trustbox_spec.state_transition import advance_height, apply_call  # noqa: E402
from trustbox_spec.test_accounts import BY_NAME, identity_for  # noqa: E402
from trustbox_spec.types import (  # noqa: E402
    AccountState,
    CallType,
    ContractCall,
    LedgerState,
)
from runner_config import RunnerConfig  # noqa: E402
from yaml_dump import write_yaml  # noqa: E402

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """Raised for malformed scenario files."""


@dataclass
class StepResult:
    """Result of a single scenario step."""
    index: int
    description: str
    passed: bool
    ok: Optional[bool] = None
    error: Optional[str] = None
    value: Any = None
    mismatches: List[str] = field(default_factory=list)


@dataclass
class ScenarioResult:
    """Result of a whole scenario file."""
    name: str
    passed: bool
    execution_time_ms: float
    steps: List[StepResult] = field(default_factory=list)
    balance_mismatches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "execution_time_ms": round(self.execution_time_ms, 3),
            "steps": [
                {
                    "index": s.index,
                    "step": s.description,
                    "passed": s.passed,
                    "ok": s.ok,
                    "error": s.error,
                    "value": s.value,
                    "mismatches": s.mismatches,
                }
                for s in self.steps
            ],
            "balance_mismatches": self.balance_mismatches,
        }


def resolve_identity(name: str) -> bytes:
    """Map a scenario account name (or 64-char hex) to an identity."""
    key = str(name).lower()
    if key in BY_NAME:
        return BY_NAME[key]
    if len(key) == 64:
        try:
            return bytes.fromhex(key)
        except ValueError:
            pass
    return identity_for(key)


def build_call(step: Dict[str, Any]) -> ContractCall:
    try:
        call_type = CallType(step["call"])
    except (KeyError, ValueError) as exc:
        raise ScenarioError(f"unknown call in step: {step!r}") from exc
    if "as" not in step:
        raise ScenarioError(f"step has no caller: {step!r}")

    payload: Dict[str, Any] = {}
    if call_type == CallType.CREATE_ESCROW:
        payload["seller"] = resolve_identity(step["seller"])
        payload["amount"] = step["amount"]
    elif call_type in (CallType.APPROVE_RELEASE, CallType.CANCEL_ESCROW):
        payload["escrow_id"] = step["escrow_id"]

    return ContractCall(source=resolve_identity(step["as"]), call_type=call_type, payload=payload)


def initial_state(scenario: Dict[str, Any]) -> LedgerState:
    state = LedgerState()
    state.global_state.block_height = scenario.get("start_height", 0)
    for name, balance in (scenario.get("accounts") or {}).items():
        addr = resolve_identity(name)
        state.accounts[addr] = AccountState(address=addr, balance=balance)
    return state


class ScenarioRunner:
    """Runs scenario steps serially against a fresh ledger state."""

    def __init__(self, config: RunnerConfig):
        self.config = config

    def _check_expect(
        self, state: LedgerState, expect: Dict[str, Any], result, escrow_id: Optional[int]
    ) -> List[str]:
        mismatches = []
        if "ok" in expect and expect["ok"] != result.ok:
            mismatches.append(f"ok: expected {expect['ok']}, got {result.ok}")
        actual_err = result.error.code.name if result.error else None
        if "error" in expect and expect["error"] != actual_err:
            mismatches.append(f"error: expected {expect['error']}, got {actual_err}")
        if "value" in expect and expect["value"] != result.value:
            mismatches.append(f"value: expected {expect['value']}, got {result.value}")
        if "status" in expect:
            actual_status = None
            if escrow_id is not None and queries.escrow_exists(state, escrow_id):
                actual_status = queries.get_escrow_status(state, escrow_id).value
            if expect["status"] != actual_status:
                mismatches.append(f"status: expected {expect['status']}, got {actual_status}")
        return mismatches

    def run_step(self, state: LedgerState, index: int, step: Dict[str, Any]):
        if "mine" in step:
            blocks = int(step["mine"])
            return advance_height(state, blocks), StepResult(
                index=index, description=f"mine {blocks}", passed=True
            )

        call = build_call(step)
        description = f"{call.call_type.value} as {step['as']}"
        post_state, result = apply_call(state, call)

        escrow_id = step.get("escrow_id")
        if call.call_type == CallType.CREATE_ESCROW and result.ok:
            escrow_id = result.value

        mismatches = self._check_expect(post_state, step.get("expect") or {}, result, escrow_id)
        return post_state, StepResult(
            index=index,
            description=description,
            passed=not mismatches,
            ok=result.ok,
            error=result.error.code.name if result.error else None,
            value=result.value,
            mismatches=mismatches,
        )

    def run(self, scenario: Dict[str, Any], name: str = "scenario") -> ScenarioResult:
        name = scenario.get("name", name)
        logger.info(f"Running scenario: {name}")
        start_time = time.time()

        state = initial_state(scenario)
        steps: List[StepResult] = []
        for index, step in enumerate(scenario.get("steps") or []):
            state, step_result = self.run_step(state, index, step)
            steps.append(step_result)

            status = "PASS" if step_result.passed else "FAIL"
            logger.info(f"  [{status}] #{index} {step_result.description}")
            for mismatch in step_result.mismatches:
                logger.info(f"         {mismatch}")

            if not step_result.passed and self.config.stop_on_first_failure:
                break

        balance_mismatches = []
        for acct_name, expected in (scenario.get("balances") or {}).items():
            actual = balance_of(state, resolve_identity(acct_name))
            if actual != expected:
                balance_mismatches.append(f"{acct_name}: expected {expected}, got {actual}")
                logger.info(f"  [FAIL] balance {acct_name}: expected {expected}, got {actual}")

        return ScenarioResult(
            name=name,
            passed=all(s.passed for s in steps) and not balance_mismatches,
            execution_time_ms=(time.time() - start_time) * 1000,
            steps=steps,
            balance_mismatches=balance_mismatches,
        )

    def run_file(self, path: str) -> ScenarioResult:
        with open(path) as f:
            scenario = yaml.safe_load(f)
        if not isinstance(scenario, dict):
            raise ScenarioError(f"{path}: scenario must be a mapping")
        return self.run(scenario, name=Path(path).stem)


def find_scenario_files(scenario_dir: str) -> List[str]:
    """Find all scenario YAML files in directory."""
    patterns = [
        os.path.join(scenario_dir, "**", "*.yaml"),
        os.path.join(scenario_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--scenarios",
    default=None,
    help="Path to scenarios directory or specific YAML file",
)
@click.option(
    "--report-dir",
    default=None,
    help="Directory to write YAML reports to",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop a scenario on its first failing step",
)
def main(
    scenarios: Optional[str],
    report_dir: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run TrustBox escrow scenarios."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    config = RunnerConfig.from_env()

    if report_dir:
        config.report_dir = report_dir
    if verbose:
        config.verbose = True
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if stop_on_failure:
        config.stop_on_first_failure = True

    scenario_path = scenarios or config.scenario_dir
    if os.path.isfile(scenario_path):
        scenario_files = [scenario_path]
    else:
        scenario_files = find_scenario_files(scenario_path)

    if not scenario_files:
        logger.error(f"No scenario files found in {scenario_path}")
        sys.exit(1)

    logger.info(f"Found {len(scenario_files)} scenario files")

    runner = ScenarioRunner(config)
    failed = 0
    for path in scenario_files:
        try:
            result = runner.run_file(path)
        except (ScenarioError, KeyError, yaml.YAMLError) as e:
            logger.error(f"Invalid scenario {path}: {e}")
            failed += 1
            continue
        write_yaml(Path(config.report_dir) / f"{Path(path).stem}.yaml", result.to_dict())
        if not result.passed:
            failed += 1

    logger.info(f"{len(scenario_files) - failed}/{len(scenario_files)} scenarios passed")
    sys.exit(0 if failed == 0 else 1)


if __name__ == "__main__":
    main()
