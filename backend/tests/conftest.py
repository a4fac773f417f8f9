"""
Pytest configuration and shared fixtures for testing.

Factories are exposed as fixtures returning callables so test modules never
need to import this file.
"""
import math
import random
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from ihs_validity.core.validity import (
    QuestionnaireRecord,
    ScanSessionRecord,
    Trial,
)
from ihs_validity.core.validity._constants import DOMAINS, TRIALS_PER_SESSION

DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0"
MOBILE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"

Session = Tuple[QuestionnaireRecord, ScanSessionRecord]


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan: no Sentry init, no engine disposal."""
    yield


def create_test_application():
    """The production app with the lifespan disabled."""
    from ihs_validity.main import create_application

    test_app = create_application()
    test_app.router.lifespan_context = _test_lifespan
    return test_app


def build_trials(
    responses: Sequence[Optional[bool]],
    response_time_ms: float = 900.0,
    modality: str = "click",
) -> Tuple[Trial, ...]:
    """One trial per response, cycling through the five domains."""
    return tuple(
        Trial(
            card_id=i + 1,
            domain=DOMAINS[i % len(DOMAINS)],
            response=response,
            response_time_ms=None if response is None else response_time_ms,
            input_modality=modality,
            label=f"card-{i + 1}",
        )
        for i, response in enumerate(responses)
    )


def build_session(
    session_id: str,
    ihs: Optional[float],
    who5: Sequence[int] = (),
    swls: Sequence[int] = (),
    cantril: Optional[int] = None,
    trials: Sequence[Trial] = (),
    user_agent: str = DESKTOP_UA,
    n1_scaled: Optional[float] = None,
    n2: Optional[float] = None,
    n3: Optional[float] = None,
    sex: Optional[str] = None,
    age: Optional[int] = None,
    country: Optional[str] = None,
) -> Session:
    questionnaire = QuestionnaireRecord(
        session_id=session_id,
        who5=tuple(who5),
        swls=tuple(swls),
        cantril=cantril,
        sex=sex,
        age=age,
        country=country,
    )
    scan = ScanSessionRecord(
        session_id=session_id,
        ihs=ihs,
        n1_scaled=n1_scaled,
        n2=n2,
        n3=n3,
        trials=tuple(trials),
        user_agent=user_agent,
    )
    return questionnaire, scan


def _clamp_int(value: float, lo: int, hi: int) -> int:
    return max(lo, min(hi, int(round(value))))


def build_population(
    n: int, seed: int = 7, signal: float = 1.0
) -> Tuple[List[QuestionnaireRecord], List[ScanSessionRecord]]:
    """
    Synthetic population driven by one latent wellbeing factor.

    Questionnaires, IHS and trial answers all load on the latent factor; with
    ``signal=0`` the IHS and trials are pure noise.
    """
    rng = random.Random(seed)
    questionnaires: List[QuestionnaireRecord] = []
    scans: List[ScanSessionRecord] = []
    for i in range(n):
        w = rng.gauss(0.0, 1.0)
        who5 = [_clamp_int(2.5 + w + rng.gauss(0, 0.6), 0, 5) for _ in range(5)]
        swls = [_clamp_int(4.0 + 1.2 * w + rng.gauss(0, 0.8), 1, 7) for _ in range(5)]
        cantril = _clamp_int(6.0 + 1.5 * w + rng.gauss(0, 1.0), 0, 10)
        p_yes = 1.0 / (1.0 + math.exp(-1.5 * signal * w))
        responses = [rng.random() < p_yes for _ in range(TRIALS_PER_SESSION)]
        trials = tuple(
            Trial(
                card_id=j + 1,
                domain=DOMAINS[j % len(DOMAINS)],
                response=responses[j],
                response_time_ms=rng.uniform(500.0, 1600.0),
                input_modality="click",
                label=f"card-{j + 1}",
            )
            for j in range(TRIALS_PER_SESSION)
        )
        ihs = 50.0 + 12.0 * signal * w + rng.gauss(0, 5.0)
        session_id = f"s{i:04d}"
        questionnaires.append(
            QuestionnaireRecord(session_id=session_id, who5=tuple(who5), swls=tuple(swls), cantril=cantril)
        )
        scans.append(
            ScanSessionRecord(
                session_id=session_id,
                ihs=ihs,
                n2=50.0 + 10.0 * signal * w + rng.gauss(0, 6.0),
                n3=50.0 + 8.0 * signal * w + rng.gauss(0, 8.0),
                trials=trials,
                user_agent=DESKTOP_UA if i % 3 else MOBILE_UA,
            )
        )
    return questionnaires, scans


@pytest.fixture
def make_trials() -> Callable[..., Tuple[Trial, ...]]:
    return build_trials


@pytest.fixture
def make_session() -> Callable[..., Session]:
    return build_session


@pytest.fixture
def make_population() -> Callable[..., Tuple[List[QuestionnaireRecord], List[ScanSessionRecord]]]:
    return build_population


@pytest.fixture
def three_session_scenario() -> Tuple[List[QuestionnaireRecord], List[ScanSessionRecord]]:
    """Three respondents whose every measure rises together."""
    sessions = [
        build_session("low", 30.0, who5=(2, 2, 2, 2, 2), swls=(2, 2, 2, 2, 2), cantril=4),
        build_session("mid", 50.0, who5=(3, 3, 3, 3, 3), swls=(3, 3, 3, 3, 2), cantril=6),
        build_session("high", 70.0, who5=(4, 4, 4, 4, 4), swls=(4, 4, 4, 3, 3), cantril=8),
    ]
    return [q for q, _ in sessions], [s for _, s in sessions]
