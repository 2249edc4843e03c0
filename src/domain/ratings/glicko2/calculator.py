"""Player-level Glicko-2 update function."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from math import exp, isfinite, log, pi, sqrt
from typing import Final

from domain.errors import ValidationError

GLICKO2_SCALE: Final[float] = 173.7178
DEFAULT_RATING: Final[float] = 1500.0
VALID_SCORES: Final[frozenset[float]] = frozenset({0.0, 0.5, 1.0})
MAX_SOLVER_ITERATIONS: Final[int] = 1_000


@dataclass(frozen=True)
class Glicko2Parameters:
    initial_rating: float = 1500.0
    initial_rd: float = 350.0
    initial_volatility: float = 0.06
    tau: float = 0.5
    epsilon: float = 1e-6


@dataclass(frozen=True)
class Glicko2Rating:
    """One (rating, RD, volatility) triple on the display scale."""

    rating: float
    rd: float
    volatility: float

    @classmethod
    def initial(cls, params: Glicko2Parameters) -> "Glicko2Rating":
        return cls(
            rating=params.initial_rating,
            rd=params.initial_rd,
            volatility=params.initial_volatility,
        )


@dataclass(frozen=True)
class Glicko2OpponentResult:
    opponent_rating: float
    opponent_rd: float
    score: float


def _to_mu(rating: float) -> float:
    return (rating - DEFAULT_RATING) / GLICKO2_SCALE


def _to_phi(rd: float) -> float:
    return rd / GLICKO2_SCALE


def _from_mu(mu: float) -> float:
    return (mu * GLICKO2_SCALE) + DEFAULT_RATING


def _from_phi(phi: float) -> float:
    return phi * GLICKO2_SCALE


def _g(phi: float) -> float:
    return 1.0 / sqrt(1.0 + ((3.0 * (phi**2)) / (pi**2)))


def _expected(mu: float, opp_mu: float, opp_phi: float) -> float:
    exponent = -_g(opp_phi) * (mu - opp_mu)
    if exponent >= 0.0:
        exp_term = exp(-exponent)
        return exp_term / (1.0 + exp_term)
    exp_term = exp(exponent)
    return 1.0 / (1.0 + exp_term)


def calculate_expected_score(
    *,
    rating: float,
    rd: float,
    opponent_rating: float,
    opponent_rd: float,
) -> float:
    """Compute expected score for one side under Glicko-2."""
    _validate_state(rating=rating, rd=rd, volatility=None)
    _validate_state(rating=opponent_rating, rd=opponent_rd, volatility=None, label="opponent")
    return _expected(
        _to_mu(rating),
        _to_mu(opponent_rating),
        _to_phi(opponent_rd),
    )


def _validate_state(
    *,
    rating: float,
    rd: float,
    volatility: float | None,
    label: str = "player",
) -> None:
    if not isfinite(rating):
        raise ValidationError(f"{label} rating must be finite, got {rating!r}")
    if not isfinite(rd) or rd <= 0.0:
        raise ValidationError(f"{label} rd must be a finite value > 0, got {rd!r}")
    if volatility is not None and (not isfinite(volatility) or volatility <= 0.0):
        raise ValidationError(f"{label} volatility must be a finite value > 0, got {volatility!r}")


def _solve_volatility(
    *,
    phi: float,
    sigma: float,
    delta: float,
    v: float,
    tau: float,
    epsilon: float,
) -> float:
    a = log(sigma**2)

    def f(x: float) -> float:
        ex = exp(x)
        numerator = ex * ((delta**2) - (phi**2) - v - ex)
        denominator = 2.0 * ((phi**2) + v + ex) ** 2
        return (numerator / denominator) - ((x - a) / (tau**2))

    a_value = a
    if (delta**2) > ((phi**2) + v):
        b_value = log((delta**2) - (phi**2) - v)
    else:
        k = 1
        b_value = a_value - (k * tau)
        while f(b_value) < 0.0:
            k += 1
            if k > MAX_SOLVER_ITERATIONS:
                raise ValidationError("Glicko-2 volatility solve failed to bracket root.")
            b_value = a_value - (k * tau)

    f_a = f(a_value)
    f_b = f(b_value)
    iterations = 0
    while abs(b_value - a_value) > epsilon:
        iterations += 1
        if iterations > MAX_SOLVER_ITERATIONS:
            raise ValidationError("Glicko-2 volatility solve did not converge.")
        if f_b == f_a:
            c_value = (a_value + b_value) / 2.0
        else:
            c_value = a_value + (((a_value - b_value) * f_a) / (f_b - f_a))
        f_c = f(c_value)
        if f_c * f_b < 0.0:
            a_value = b_value
            f_a = f_b
        else:
            f_a /= 2.0
        b_value = c_value
        f_b = f_c

    return exp(a_value / 2.0)


def update_glicko2_player(
    *,
    rating: float,
    rd: float,
    volatility: float,
    results: Sequence[Glicko2OpponentResult],
    tau: float = 0.5,
    epsilon: float = 1e-6,
) -> tuple[float, float, float]:
    """Update one player for one Glicko-2 rating period.

    Raises ValidationError for empty results, non-positive RD or volatility,
    scores outside {0, 0.5, 1}, or a volatility solve that cannot finish.
    Inputs are never clamped.
    """
    if not results:
        raise ValidationError("Glicko-2 update requires at least one game outcome")
    if tau <= 0.0:
        raise ValidationError(f"tau must be > 0, got {tau!r}")
    if epsilon <= 0.0:
        raise ValidationError(f"epsilon must be > 0, got {epsilon!r}")
    _validate_state(rating=rating, rd=rd, volatility=volatility)

    mu = _to_mu(rating)
    phi = _to_phi(rd)

    g_terms: list[float] = []
    e_terms: list[float] = []
    score_minus_e_terms: list[float] = []
    for result in results:
        _validate_state(
            rating=result.opponent_rating,
            rd=result.opponent_rd,
            volatility=None,
            label="opponent",
        )
        if float(result.score) not in VALID_SCORES:
            raise ValidationError(f"score must be one of 0, 0.5 or 1, got {result.score!r}")
        opp_mu = _to_mu(result.opponent_rating)
        opp_phi = _to_phi(result.opponent_rd)
        g_term = _g(opp_phi)
        expected = _expected(mu, opp_mu, opp_phi)
        g_terms.append(g_term)
        e_terms.append(expected)
        score_minus_e_terms.append(result.score - expected)

    v_inverse = 0.0
    for g_term, expected in zip(g_terms, e_terms):
        v_inverse += (g_term**2) * expected * (1.0 - expected)
    if v_inverse <= 0.0:
        raise ValidationError("Glicko-2 variance estimate is degenerate for these opponents")

    v = 1.0 / v_inverse
    delta = v * sum(g_term * score_minus_e for g_term, score_minus_e in zip(g_terms, score_minus_e_terms))
    sigma_prime = _solve_volatility(
        phi=phi,
        sigma=volatility,
        delta=delta,
        v=v,
        tau=tau,
        epsilon=epsilon,
    )

    phi_star = sqrt((phi**2) + (sigma_prime**2))
    phi_prime = 1.0 / sqrt((1.0 / (phi_star**2)) + (1.0 / v))
    mu_prime = mu + (phi_prime**2) * sum(
        g_term * score_minus_e for g_term, score_minus_e in zip(g_terms, score_minus_e_terms)
    )

    new_rating, new_rd = _from_mu(mu_prime), _from_phi(phi_prime)
    if not (isfinite(new_rating) and isfinite(new_rd) and isfinite(sigma_prime)):
        raise ValidationError("Glicko-2 update produced a non-finite rating")
    return new_rating, new_rd, sigma_prime


def update_rating(
    player: Glicko2Rating,
    opponent: Glicko2Rating,
    score: float,
    params: Glicko2Parameters,
) -> Glicko2Rating:
    """Apply a single head-to-head game to ``player``."""
    rating, rd, volatility = update_glicko2_player(
        rating=player.rating,
        rd=player.rd,
        volatility=player.volatility,
        results=[
            Glicko2OpponentResult(
                opponent_rating=opponent.rating,
                opponent_rd=opponent.rd,
                score=score,
            )
        ],
        tau=params.tau,
        epsilon=params.epsilon,
    )
    return Glicko2Rating(rating=rating, rd=rd, volatility=volatility)
