from market_deployment.executor import COMPONENT_DEPLOYED, HOOK_SKIPPED, DeploymentEvent, Executor
from market_deployment.plan import DeploymentPlan
from market_deployment.reporting import (
    NEXT_STEPS,
    echo_event,
    echo_next_steps,
    echo_summary,
    echo_verification_report,
)
from market_deployment.verify import FAILED, SKIPPED, VERIFIED, VerificationReport, VerificationResult
from tests.conftest import DEPLOYER, market_components


def test_summary(capsys, ledger):
    record = Executor().execute(DeploymentPlan(market_components()), ledger)
    echo_summary(record)
    out = capsys.readouterr().out

    assert "DEPLOYMENT SUMMARY:" in out
    assert f"{'Factory':<25}: addr-3" in out
    assert f"{'Deployer':<25}: {DEPLOYER}" in out
    assert f"{'Network':<25}: sepolia" in out


def test_events(capsys):
    echo_event(DeploymentEvent(COMPONENT_DEPLOYED, "Token", {"address": "addr-2"}))
    echo_event(DeploymentEvent(HOOK_SKIPPED, "Market", {"hook": "Market.pause"}))
    out = capsys.readouterr().out
    assert "Token deployed to: addr-2" in out
    assert "Market.pause already done" in out


def test_verification_report(capsys):
    report = VerificationReport()
    report["Token"] = VerificationResult(status=VERIFIED)
    report["Factory"] = VerificationResult(status=FAILED, reason="bytecode does not match")
    echo_verification_report(report)
    out = capsys.readouterr().out
    assert "1 verified, 1 failed, 0 skipped" in out
    assert "Factory: bytecode does not match" in out


def test_skipped_verification_report(capsys):
    report = VerificationReport()
    report["Token"] = VerificationResult(status=SKIPPED, reason="NotApplicable: local network 'local'")
    echo_verification_report(report)
    assert "Verification skipped (NotApplicable" in capsys.readouterr().out


def test_next_steps(capsys):
    echo_next_steps()
    out = capsys.readouterr().out
    assert f"{len(NEXT_STEPS)}. {NEXT_STEPS[-1]}" in out
