"""Glicko-2 math: scale conversions, expected score and the volatility root-find."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from math import exp, log, pi, sqrt
from typing import Final

from domain.common import clamp
from domain.defaults import (
    DEFAULT_GLICKO2_DEVIATION,
    DEFAULT_GLICKO2_RATING,
    DEFAULT_GLICKO2_VOLATILITY,
)

GLICKO2_SCALE: Final[float] = 173.7178
# The volatility objective is treated as 0 beyond this magnitude.
OBJECTIVE_GUARD: Final[float] = 100.0
SECANT_LIMIT: Final[float] = 50.0


@dataclass(frozen=True)
class Glicko2Parameters:
    initial_rating: float = DEFAULT_GLICKO2_RATING
    initial_rd: float = DEFAULT_GLICKO2_DEVIATION
    initial_volatility: float = DEFAULT_GLICKO2_VOLATILITY
    tau: float = 0.5
    epsilon: float = 1e-6
    max_iterations: int = 100
    min_rd: float = 30.0
    max_rd: float = 350.0
    min_volatility: float = 0.01
    max_volatility: float = 0.15
    min_rating: float = 100.0
    max_rating: float = 3500.0
    min_expected: float = 0.0001
    max_expected: float = 0.9999
    early_leaver_scale: float = 0.7


@dataclass(frozen=True)
class Glicko2OpponentResult:
    opponent_rating: float
    opponent_rd: float
    score: float


@dataclass(frozen=True)
class VolatilityProblem:
    """Inputs of the volatility objective for one update."""

    phi: float
    delta: float
    v: float
    tau: float
    a0: float


@dataclass(frozen=True)
class VolatilityBracket:
    """Illinois bracket ``[a, b]`` together with the objective at both ends."""

    a: float
    b: float
    f_a: float
    f_b: float


def _to_mu(rating: float) -> float:
    return (rating - DEFAULT_GLICKO2_RATING) / GLICKO2_SCALE


def _to_phi(rd: float) -> float:
    return rd / GLICKO2_SCALE


def _from_mu(mu: float) -> float:
    return (mu * GLICKO2_SCALE) + DEFAULT_GLICKO2_RATING


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
    params: Glicko2Parameters | None = None,
) -> float:
    """Compute the clamped Glicko-2 expected score for one player."""
    params = params or Glicko2Parameters()
    return clamp(
        _expected(_to_mu(rating), _to_mu(opponent_rating), _to_phi(opponent_rd)),
        params.min_expected,
        params.max_expected,
    )


def volatility_objective(x: float, problem: VolatilityProblem) -> float:
    if abs(x) > OBJECTIVE_GUARD:
        return 0.0
    ex = exp(x)
    denominator = (problem.phi**2) + problem.v + ex
    if denominator <= 0.0:
        return 0.0
    numerator = ex * ((problem.delta**2) - (problem.phi**2) - problem.v - ex)
    return (numerator / (2.0 * denominator**2)) - ((x - problem.a0) / (problem.tau**2))


def initial_bracket(problem: VolatilityProblem, *, max_iterations: int) -> VolatilityBracket:
    a = problem.a0
    excess = (problem.delta**2) - (problem.phi**2) - problem.v
    if excess > 0.0:
        b = log(excess)
    else:
        k = 1
        while volatility_objective(a - k * problem.tau, problem) < 0.0 and k < max_iterations:
            k += 1
        b = a - k * problem.tau
    return VolatilityBracket(
        a=a,
        b=b,
        f_a=volatility_objective(a, problem),
        f_b=volatility_objective(b, problem),
    )


def illinois_step(bracket: VolatilityBracket, problem: VolatilityProblem) -> VolatilityBracket:
    """One Illinois regula-falsi step; returns a new bracket."""
    c = bracket.a + (bracket.a - bracket.b) * bracket.f_a / (bracket.f_b - bracket.f_a)
    c = clamp(c, -SECANT_LIMIT, SECANT_LIMIT)
    f_c = volatility_objective(c, problem)
    if f_c * bracket.f_b <= 0.0:
        return VolatilityBracket(a=bracket.b, b=c, f_a=bracket.f_b, f_b=f_c)
    return VolatilityBracket(a=bracket.a, b=c, f_a=bracket.f_a / 2.0, f_b=f_c)


def solve_volatility(
    problem: VolatilityProblem,
    *,
    epsilon: float,
    max_iterations: int,
) -> float:
    bracket = initial_bracket(problem, max_iterations=max_iterations)
    for _ in range(max_iterations):
        if abs(bracket.b - bracket.a) <= epsilon:
            break
        if abs(bracket.f_b - bracket.f_a) < epsilon:
            break
        bracket = illinois_step(bracket, problem)
    return exp(bracket.a / 2.0)


def update_glicko2_player(
    *,
    rating: float,
    rd: float,
    volatility: float,
    results: Sequence[Glicko2OpponentResult],
    params: Glicko2Parameters | None = None,
) -> tuple[float, float, float]:
    """Update one player for one rating period against one or more opponents."""
    params = params or Glicko2Parameters()
    rd = clamp(rd, params.min_rd, params.max_rd)
    volatility = clamp(volatility, params.min_volatility, params.max_volatility)
    if not results:
        return rating, rd, volatility

    mu = _to_mu(rating)
    phi = _to_phi(rd)

    v_inverse = 0.0
    improvement = 0.0
    for result in results:
        opp_phi = _to_phi(clamp(result.opponent_rd, params.min_rd, params.max_rd))
        g_term = _g(opp_phi)
        expected = clamp(
            _expected(mu, _to_mu(result.opponent_rating), opp_phi),
            params.min_expected,
            params.max_expected,
        )
        v_inverse += (g_term**2) * expected * (1.0 - expected)
        improvement += g_term * (result.score - expected)

    v = 1.0 / v_inverse
    delta = v * improvement
    sigma_prime = solve_volatility(
        VolatilityProblem(phi=phi, delta=delta, v=v, tau=params.tau, a0=log(volatility**2)),
        epsilon=params.epsilon,
        max_iterations=params.max_iterations,
    )
    sigma_prime = clamp(sigma_prime, params.min_volatility, params.max_volatility)

    phi_star = sqrt((phi**2) + (sigma_prime**2))
    phi_prime = 1.0 / sqrt((1.0 / (phi_star**2)) + (1.0 / v))
    mu_prime = mu + (phi_prime**2) * improvement

    post_rating = clamp(_from_mu(mu_prime), params.min_rating, params.max_rating)
    post_rd = clamp(_from_phi(phi_prime), params.min_rd, params.max_rd)
    return post_rating, post_rd, sigma_prime


__all__ = [
    "GLICKO2_SCALE",
    "Glicko2OpponentResult",
    "Glicko2Parameters",
    "VolatilityBracket",
    "VolatilityProblem",
    "calculate_expected_score",
    "illinois_step",
    "initial_bracket",
    "solve_volatility",
    "update_glicko2_player",
    "volatility_objective",
]
