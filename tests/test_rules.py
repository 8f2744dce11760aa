"""Tests for the compliance rule evaluator."""

from versiongate.models import ProbeObservation, ServiceBucket, TierVersions
from versiongate.rules import RULES, evaluate_all, evaluate_bucket


def _bucket(service="invoice-api", project_name="Billing", **versions):
    bucket = ServiceBucket(service=service, project_id=1)
    for env, version in versions.items():
        bucket.tiers[env] = ProbeObservation(
            service=service,
            version=version,
            url=f"https://{service}.{env}.example.com/info",
            status="online",
            environment=env,
            region="paris",
            project_id=1,
            project_name=project_name,
        )
    return bucket


def _by_severity(violations, severity):
    return [v for v in violations if v.severity == severity]


class TestRuleTable:
    def test_rule_order(self):
        assert [r.id for r in RULES] == ["A1", "A2", "B", "C"]


class TestEvaluateBucket:
    def test_prod_ahead_of_oat_and_uat(self):
        violations = evaluate_bucket(_bucket(prod="2.0.0", oat="1.5.0", uat="1.9.0"))
        assert len(_by_severity(violations, "critical")) == 2
        assert len(_by_severity(violations, "warning")) == 0
        assert [v.rule for v in violations] == ["A1", "A2"]

    def test_oat_ahead_of_uat_without_prod(self):
        violations = evaluate_bucket(_bucket(oat="2.0.0", uat="1.0.0"))
        assert len(violations) == 1
        assert violations[0].severity == "warning"
        assert violations[0].rule == "B"
        assert violations[0].message == (
            "WARNING: OAT version (2.0.0) is higher than UAT version (1.0.0). "
            "OAT version can’t be higher than UAT."
        )

    def test_prod_without_uat(self):
        violations = evaluate_bucket(_bucket(prod="1.0.0"))
        assert len(violations) == 1
        assert violations[0].severity == "warning"
        assert "UAT environment is missing" in violations[0].message
        assert violations[0].message == "WARNING: PROD exists (1.0.0) but UAT environment is missing."

    def test_empty_bucket(self):
        assert evaluate_bucket(_bucket()) == []

    def test_only_custom_tiers_is_empty(self):
        assert evaluate_bucket(_bucket(staging="9.9.9")) == []

    def test_compliant_pipeline(self):
        violations = evaluate_bucket(_bucket(dev="2.0.0", uat="1.9.0", oat="1.9.0", prod="1.8.0"))
        assert violations == []

    def test_dev_is_never_compared(self):
        assert evaluate_bucket(_bucket(dev="0.1.0", uat="5.0.0")) == []
        assert evaluate_bucket(_bucket(dev="9.0.0", uat="1.0.0")) == []

    def test_equal_versions_do_not_fire(self):
        assert evaluate_bucket(_bucket(uat="1.0.0", oat="v1.0.0", prod="1.0.0-hotfix")) == []

    def test_rules_fire_independently(self):
        violations = evaluate_bucket(_bucket(prod="3.0.0", oat="2.0.0", uat="1.0.0"))
        assert [v.rule for v in violations] == ["A1", "A2", "B"]

    def test_prod_ahead_of_oat_and_uat_missing(self):
        violations = evaluate_bucket(_bucket(prod="3.0.0", oat="2.0.0"))
        assert [v.rule for v in violations] == ["A1", "C"]

    def test_critical_message_wording(self):
        violations = evaluate_bucket(_bucket(prod="2.0.0", oat="1.5.0", uat="2.0.0"))
        assert violations[0].message == (
            "CRITICAL: PROD version (2.0.0) is higher than OAT version (1.5.0). "
            "PROD version can’t be higher than OAT or UAT."
        )

    def test_snapshot_carries_every_tier(self):
        violations = evaluate_bucket(_bucket(dev="3.0.0", prod="1.0.0"))
        assert violations[0].environments == TierVersions(dev="3.0.0", prod="1.0.0")
        assert violations[0].environments.to_dict() == {"dev": "3.0.0", "prod": "1.0.0"}

    def test_identity_taken_from_first_present_tier(self):
        bucket = _bucket(uat="1.0.0", prod="2.0.0")
        bucket.tiers["uat"] = ProbeObservation(
            service="from-uat", version="1.0.0", url="u", status="online",
            environment="uat", region="paris", project_id=1, project_name="Billing",
        )
        violations = evaluate_bucket(bucket)
        assert violations[0].service == "from-uat"
        assert violations[0].identity == "from-uat-Billing"

    def test_missing_project_name_defaults(self):
        violations = evaluate_bucket(_bucket(project_name="", prod="1.0.0"))
        assert violations[0].project_name == "Unknown Project"

    def test_custom_rule_table(self):
        only_b = [r for r in RULES if r.id == "B"]
        violations = evaluate_bucket(_bucket(prod="3.0.0", oat="2.0.0", uat="1.0.0"), only_b)
        assert [v.rule for v in violations] == ["B"]


class TestEvaluateAll:
    def test_concatenates_in_bucket_order(self):
        buckets = [
            _bucket(service="a", prod="1.0.0"),
            _bucket(service="b", uat="1.0.0", prod="1.0.0"),
            _bucket(service="c", oat="2.0.0", uat="1.0.0"),
        ]
        violations = evaluate_all(buckets)
        assert [(v.service, v.rule) for v in violations] == [("a", "C"), ("c", "B")]
