"""
Unit tests for the reference frameworks and the command line demo
"""

import json

import pytest

from recursive_cognition.__main__ import build_parser
from recursive_cognition.frameworks import default_registry, signal_scorer, stimulus_claims
from recursive_cognition.models import CandidateResponse


class TestSignalScorer:
    """Signal-driven scoring."""

    def setup_method(self):
        self.scorer = signal_scorer("utilitarian", positive=("benefit",), negative=("harm",))
        self.response = CandidateResponse(content="draft")

    def test_benefit_minus_harm(self, make_stimulus):
        """benefit 0.7, harm 0.4 → +0.3 with full confidence."""
        score = self.scorer(make_stimulus(signals={"benefit": 0.7, "harm": 0.4}), self.response)

        assert score.score == pytest.approx(0.3)
        assert score.confidence == 1.0

    def test_no_signal_no_opinion(self, make_stimulus):
        """None of its signals present → confidence 0."""
        score = self.scorer(make_stimulus(signals={"consent": 1.0}), self.response)

        assert score.confidence == 0.0
        assert not score.usable

    def test_refinement_adjustment_applied(self, make_stimulus):
        """Adjustments accumulated by refinement shift the score, clamped."""
        response = CandidateResponse(content="draft", revision=1, adjustments={"utilitarian": 0.9})

        score = self.scorer(make_stimulus(signals={"benefit": 0.9, "harm": 0.0}), response)

        assert score.score == 1.0

    def test_claims_read_from_metadata(self, make_stimulus):
        """metadata['claims'] is a comma-separated id list."""
        stimulus = make_stimulus(metadata={"claims": "c1, c2,,"}, signals={"cultural_respect": 0.5})
        scorer = signal_scorer("cultural", positive=("cultural_respect",), reference_claims=True)

        assert stimulus_claims(stimulus) == ("c1", "c2")
        assert [c.claim_id for c in scorer(stimulus, self.response).claims] == ["c1", "c2"]


class TestDefaultRegistry:

    def test_weights_sum_to_one(self):
        registry = default_registry()

        assert registry.names() == ("care", "cultural", "deontological", "utilitarian")
        assert registry.weights_sum_to_one()

    def test_care_scoped_to_vulnerable_stakeholders(self, make_stimulus):
        """Care framework is skipped for a context without dependents."""
        care = default_registry().snapshot().get("care")

        assert care.applies_to({"patients"})
        assert not care.applies_to({"shareholders"})


class TestDemoCommand:

    def test_demo_prints_outcome(self, capsys):
        """`demo` runs one cycle and prints the outcome as JSON."""
        args = build_parser().parse_args(["demo", "--seed", "3"])

        assert args.handler(args) == 0

        out = capsys.readouterr().out
        payload = json.loads(out[out.index("{\n"):])
        assert payload["verdict"]["type"] in {"accept", "retry", "escalate_to_human", "reject"}
        assert payload["final_report"]["stimulus_id"] == "demo-triage"
