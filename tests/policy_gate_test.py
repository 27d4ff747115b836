import pytest
from structlog.testing import capture_logs

from scagate.core.config import PolicyConfig
from scagate.core.exceptions import ScanRecordIncomplete
from scagate.core.storage import MemoryPropertyStore
from scagate.models import scan_record
from scagate.models.threshold import SecurityRiskThreshold
from scagate.services.policy_gate import exceeds_threshold
from scagate.services.policy_gate import PolicyGate
from scagate.services.policy_gate import violates_license_policy

ARTIFACT = 'lodash-4.17.15.tgz'


def _counts(low=0, medium=0, high=0, critical=0):
    return {
        scan_record.TOTAL_RISKS_COUNT: str(low + medium + high + critical),
        scan_record.LOW_RISKS_COUNT: str(low),
        scan_record.MEDIUM_RISKS_COUNT: str(medium),
        scan_record.HIGH_RISKS_COUNT: str(high),
        scan_record.CRITICAL_RISKS_COUNT: str(critical),
    }


def _gate(data, threshold='None', licenses=''):
    store = MemoryPropertyStore(data)
    config = PolicyConfig(security_risk_threshold=threshold, licenses_allowed=licenses)
    return PolicyGate(store, config)


@pytest.mark.parametrize(
    'threshold, counts, blocked', [
        ('None', _counts(critical=5), False),
        ('Low', _counts(low=1), True),
        ('Low', _counts(), False),
        ('Medium', _counts(low=3), False),
        ('Medium', _counts(medium=1), True),
        ('High', _counts(medium=4), False),
        ('High', _counts(high=1), True),
        ('Critical', _counts(high=9), False),
        ('Critical', _counts(critical=1), True),
    ],
)
def test_threshold(threshold, counts, blocked):
    gate = _gate({'repo/a': counts}, threshold=threshold)
    decision = gate.check_threshold(ARTIFACT, ['repo/a'])
    assert decision.blocked is blocked
    if blocked:
        assert decision.code == 403
        assert decision.reason == (
            'Artifact has risks that do not comply with the security risk threshold. '
            f'Artifact Name: {ARTIFACT}'
        )


VECTORS = [
    _counts(),
    _counts(low=1),
    _counts(medium=1),
    _counts(high=1),
    _counts(critical=1),
    _counts(low=2, high=1),
]


@pytest.mark.parametrize('counts', VECTORS)
def test_threshold_monotonicity(counts):
    parsed = {key: int(value) for key, value in counts.items()}
    ordered = list(SecurityRiskThreshold)
    for looser, stricter in zip(ordered[1:], ordered[:-1]):
        if exceeds_threshold(looser, parsed) and stricter != SecurityRiskThreshold.NONE:
            assert exceeds_threshold(stricter, parsed)
    assert not exceeds_threshold(SecurityRiskThreshold.NONE, parsed)


@pytest.mark.parametrize(
    'allowed, licenses, blocked', [
        (set(), set(), False),
        (set(), {'GPL-3.0'}, False),
        ({'none'}, {'MIT'}, True),
        ({'NONE'}, set(), True),
        ({'MIT'}, {'MIT', 'Apache-2.0'}, False),
        ({'MIT'}, {'GPL-3.0'}, True),
        ({'MIT', 'none'}, {'MIT'}, False),
    ],
)
def test_license_policy(allowed, licenses, blocked):
    assert violates_license_policy(allowed, licenses) is blocked


def test_license_check_reads_record():
    gate = _gate({'repo/a': {scan_record.LICENSES: 'GPL-3.0'}}, licenses='MIT, Apache-2.0')
    decision = gate.check_license(ARTIFACT, ['repo/a'])
    assert decision.blocked
    assert decision.reason == f'License allowance not compliant for the artifact: {ARTIFACT}'


def test_license_check_allows_listed_license():
    gate = _gate({'repo/a': {scan_record.LICENSES: 'Apache-2.0,MIT'}}, licenses='MIT')
    assert gate.check_license(ARTIFACT, ['repo/a']).allowed


def test_license_check_without_licenses_on_record():
    gate = _gate({'repo/a': {}}, licenses='MIT')
    assert gate.check_license(ARTIFACT, ['repo/a']).blocked


def test_ignore_flag_on_any_location_skips_check():
    data = {
        'repo/a': _counts(critical=1),
        'repo/b': {**_counts(critical=1), 'sca.ignorethreshold': 'TRUE'},
    }
    gate = _gate(data, threshold='Low')

    with capture_logs() as captured:
        decision = gate.check_threshold(ARTIFACT, ['repo/a', 'repo/b'])

    assert decision.allowed
    assert any(event.get('property') == 'sca.ignorethreshold' for event in captured)


def test_ignore_license_flag():
    data = {'repo/a': {scan_record.LICENSES: 'GPL-3.0', scan_record.IGNORE_LICENSE: 'true'}}
    gate = _gate(data, licenses='MIT')
    assert gate.check_license(ARTIFACT, ['repo/a']).allowed


def test_ignore_flag_false_does_not_skip():
    data = {'repo/a': {**_counts(high=1), scan_record.IGNORE_THRESHOLD: 'false'}}
    gate = _gate(data, threshold='High')
    assert gate.check_threshold(ARTIFACT, ['repo/a']).blocked


def test_only_first_location_is_evaluated():
    data = {
        'repo/a': _counts(),
        'repo/b': _counts(critical=3),
    }
    gate = _gate(data, threshold='Low')

    with capture_logs() as captured:
        decision = gate.check_threshold(ARTIFACT, ['repo/a', 'repo/b'])

    assert decision.allowed
    assert any(event['log_level'] == 'warning' for event in captured)
    assert gate.check_threshold(ARTIFACT, ['repo/b', 'repo/a']).blocked


def test_missing_counter_raises():
    gate = _gate({'repo/a': {scan_record.TOTAL_RISKS_COUNT: '1'}}, threshold='Medium')
    with pytest.raises(ScanRecordIncomplete):
        gate.check_threshold(ARTIFACT, ['repo/a'])


def test_unparsable_counter_raises():
    counts = _counts()
    counts[scan_record.HIGH_RISKS_COUNT] = 'many'
    gate = _gate({'repo/a': counts}, threshold='High')
    with pytest.raises(ScanRecordIncomplete):
        gate.check_threshold(ARTIFACT, ['repo/a'])


def test_evaluate_threshold_wins():
    data = {'repo/a': {**_counts(high=1), scan_record.LICENSES: 'GPL-3.0'}}
    gate = _gate(data, threshold='Medium', licenses='MIT')
    decision = gate.evaluate(ARTIFACT, ['repo/a'])
    assert decision.blocked
    assert 'security risk threshold' in decision.reason


def test_evaluate_falls_through_to_license():
    data = {'repo/a': {**_counts(), scan_record.LICENSES: 'GPL-3.0'}}
    gate = _gate(data, threshold='Low', licenses='MIT')
    decision = gate.evaluate(ARTIFACT, ['repo/a'])
    assert decision.blocked
    assert 'License allowance' in decision.reason


def test_evaluate_allows_without_policy():
    gate = _gate({'repo/a': _counts(critical=10)})
    assert gate.evaluate(ARTIFACT, ['repo/a']).allowed
