"""Test that project structure is correct and modules can be imported."""

import upkeep.detect
import upkeep.models
import upkeep.parse_audit
import upkeep.parse_outdated
from upkeep.models import OutdatedPackage, RiskAssessment, RiskFactor, RiskFactors, RiskLevel, UpdateType, to_json


def test_core_modules_importable():
    """Ensure core modules can be imported."""
    assert hasattr(upkeep.models, "DepsAnalysis")
    assert hasattr(upkeep.models, "AuditResult")
    assert hasattr(upkeep.detect, "detect_package_manager")
    assert hasattr(upkeep.parse_outdated, "parse_outdated")
    assert hasattr(upkeep.parse_audit, "parse_audit")


def test_model_json_keys():
    """Models should serialize with camelCase keys and enum values."""
    package = OutdatedPackage(name="ms", current="2.0.0", latest="2.1.3", update_type=UpdateType.MINOR)
    assert to_json(package) == {
        "name": "ms",
        "current": "2.0.0",
        "latest": "2.1.3",
        "updateType": "minor",
        "isDevDep": False,
    }

    factor = RiskFactor(0, "")
    assessment = RiskAssessment(
        package="ms",
        from_version="2.0.0",
        to_version="2.1.3",
        update_type=UpdateType.MINOR,
        risk_score=15,
        risk_level=RiskLevel.LOW,
        factors=RiskFactors(factor, factor, factor, factor),
        recommendations=[],
    )
    data = to_json(assessment)
    assert data["from"] == "2.0.0"
    assert data["to"] == "2.1.3"
    assert data["factors"]["usageScope"] == {"score": 0, "reason": ""}
