"""
Synthetic multi-block survival cohorts.

simulate_cohort:
    Independent standard-normal blocks. The first feature of every block
    carries log hazard ratio log(hazard_ratio); event times are
    exponential with rate exp(η). A share of subjects is censored at a
    uniform fraction of their event time.

simulate_multiomics:
    A genotype block drawn under the Balding-Nichols model and a
    methylation-like block whose first ``overlap`` columns are noisy
    linear functions of the first ``overlap`` genotypes. A latent onset
    age is rescaled from a random combination of all features; the event
    is observed when onset precedes a uniform observation age.

References:
    Balding, D. J., & Nichols, R. A. (1995). A method for quantifying
        differentiation between populations at multi-allelic loci and its
        implications for investigating identity and paternity.
        Genetica, 96(1-2), 3-12.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.exceptions import CoopSurvError, ValidationError
from coopsurv.core.validation import check_positive


@dataclass(frozen=True)
class SimulatedCohort:
    """Feature blocks and survival outcome of a synthetic cohort."""

    time: NDArray
    event: NDArray
    blocks: tuple[NDArray, ...]
    coefficients: NDArray | None = None   # true log hazard ratios, if defined

    @property
    def n(self) -> int:
        return len(self.time)


def simulate_cohort(
    n: int = 100,
    block_sizes: Sequence[int] = (20, 20),
    *,
    hazard_ratio: float = 2.0,
    censoring: float = 0.3,
    seed=None,
) -> SimulatedCohort:
    """Proportional-hazards cohort with one signal feature per block.

    Parameters
    ----------
    n : int
        Number of subjects.
    block_sizes : sequence of int
        Feature count of each block.
    hazard_ratio : float
        Hazard ratio per unit of each signal feature, > 0.
    censoring : float
        Probability that a subject is censored, in [0, 1).
    seed : int, numpy.random.Generator or None

    Returns
    -------
    SimulatedCohort
    """
    if n < 2:
        raise ValidationError(f"n must be at least 2, got {n}")
    if len(block_sizes) == 0 or any(p < 1 for p in block_sizes):
        raise ValidationError(
            f"block_sizes must be positive feature counts, got {tuple(block_sizes)}"
        )
    check_positive(hazard_ratio, "hazard_ratio")
    if not 0.0 <= censoring < 1.0:
        raise ValidationError(f"censoring must be in [0, 1), got {censoring}")

    rng = np.random.default_rng(seed)
    blocks = tuple(rng.standard_normal((n, p)) for p in block_sizes)

    coefficients = np.concatenate([np.zeros(p) for p in block_sizes])
    starts = np.cumsum((0,) + tuple(block_sizes))[:-1]
    coefficients[starts] = np.log(hazard_ratio)

    eta = np.hstack(blocks) @ coefficients
    event_time = rng.exponential(1.0 / np.exp(eta))
    censored = rng.uniform(size=n) < censoring
    time = np.where(censored, event_time * rng.uniform(size=n), event_time)

    return SimulatedCohort(
        time=time,
        event=(~censored).astype(np.float64),
        blocks=blocks,
        coefficients=coefficients,
    )


def _allele_frequency(
    rng: np.random.Generator,
    fst: float,
    maf_range: tuple[float, float],
) -> float:
    """Balding-Nichols draw around a uniform ancestral minor allele frequency."""
    maf = rng.uniform(*maf_range)
    scale = (1.0 - fst) / fst
    return float(rng.beta(maf * scale, (1.0 - maf) * scale))


def simulate_multiomics(
    n: int = 100,
    n_geno: int = 100,
    n_meth: int = 100,
    overlap: int = 50,
    *,
    heritability: float = 0.3,
    r2_range: tuple[float, float] = (0.0, 0.1),
    age_range: tuple[float, float] = (50.0, 100.0),
    fst: float = 0.001,
    maf_range: tuple[float, float] = (0.0, 0.1),
    max_draws: int = 100_000,
    seed=None,
) -> SimulatedCohort:
    """Genotype and methylation blocks with a shared latent onset age.

    Each of the first ``overlap`` methylation columns is
    β·genotype + ε with β = sqrt(h² / (2 f (1 − f))) and ε ~ N(0, 1 − h²),
    kept only when its squared correlation with the genotype falls in
    ``r2_range``.

    Parameters
    ----------
    n : int
        Number of subjects.
    n_geno, n_meth : int
        Columns of the genotype and methylation blocks.
    overlap : int
        Genotype/methylation column pairs that are linked, <= min(n_geno, n_meth).
    heritability : float
        h in the linking model, in (0, 1).
    r2_range : tuple of float
        Accepted half-open range [low, high) of squared correlations.
    age_range : tuple of float
        Range of both the onset and the observation ages.
    fst : float
        Balding-Nichols fixation index, in (0, 1).
    maf_range : tuple of float
        Range of the ancestral minor allele frequency.
    max_draws : int
        Upper bound on candidate pairs tried for the linked columns.
    seed : int, numpy.random.Generator or None

    Returns
    -------
    SimulatedCohort
        Blocks (genotypes, methylation); time is the observation age and
        event flags onset <= observation age.

    Raises
    ------
    CoopSurvError
        If ``max_draws`` candidates do not yield ``overlap`` accepted pairs.
    """
    if n < 2:
        raise ValidationError(f"n must be at least 2, got {n}")
    if not 0 <= overlap <= min(n_geno, n_meth):
        raise ValidationError(
            f"overlap must be in [0, {min(n_geno, n_meth)}], got {overlap}"
        )
    if not 0.0 < heritability < 1.0:
        raise ValidationError(f"heritability must be in (0, 1), got {heritability}")
    if not 0.0 < fst < 1.0:
        raise ValidationError(f"fst must be in (0, 1), got {fst}")
    if not age_range[0] < age_range[1]:
        raise ValidationError(f"age_range must be increasing, got {age_range}")

    rng = np.random.default_rng(seed)
    noise_sd = np.sqrt(1.0 - heritability ** 2)

    geno_cols: list[NDArray] = []
    meth_cols: list[NDArray] = []
    draws = 0
    while len(geno_cols) < overlap:
        if draws >= max_draws:
            raise CoopSurvError(
                f"only {len(geno_cols)} of {overlap} linked columns accepted "
                f"after {max_draws} draws; widen r2_range"
            )
        draws += 1
        freq = _allele_frequency(rng, fst, maf_range)
        genos = rng.binomial(2, freq, size=n).astype(np.float64)
        # monomorphic draws have no defined correlation
        if np.std(genos) == 0.0:
            continue
        beta = np.sqrt(heritability ** 2 / (2.0 * freq * (1.0 - freq)))
        y = beta * genos + rng.normal(0.0, noise_sd, size=n)
        r2 = np.corrcoef(genos, y)[0, 1] ** 2
        if r2_range[0] <= r2 < r2_range[1]:
            geno_cols.append(genos)
            meth_cols.append(y)

    for _ in range(n_geno - overlap):
        freq = _allele_frequency(rng, fst, maf_range)
        geno_cols.append(rng.binomial(2, freq, size=n).astype(np.float64))
    for _ in range(n_meth - overlap):
        meth_cols.append(rng.normal(0.0, noise_sd, size=n))

    genotypes = np.column_stack(geno_cols) if geno_cols else np.empty((n, 0))
    methylation = np.column_stack(meth_cols) if meth_cols else np.empty((n, 0))

    latent = np.hstack([genotypes, methylation]) @ rng.uniform(size=n_geno + n_meth)
    low, high = age_range
    spread = latent.max() - latent.min()
    if spread == 0.0:
        onset = np.full(n, low)
    else:
        onset = (latent - latent.min()) / spread * (high - low) + low
    observed_age = rng.uniform(low, high, size=n)

    return SimulatedCohort(
        time=observed_age,
        event=(onset <= observed_age).astype(np.float64),
        blocks=(genotypes, methylation),
    )
