"""
scoring/ — Applicant Verification Scoring Engine

Modules:
    utils.py                  - Decimal utilities
    rubric.py                 - Rubric Table (7 categories, caps sum to 100)
    base.py                   - Scorer protocol shared by all strategies
    field_mapper.py           - Draft record -> ApplicantData coercion
    deterministic_scorer.py   - Rule evaluation over ApplicantData
    pattern_scorer.py         - Regex/keyword heuristics over raw text
    reasoning_client.py       - HTTP client for the external reasoning service
    holistic_scorer.py        - Reasoning-service adapter with clamping/coercion
    aggregator.py             - Total, risk band and blending
"""
