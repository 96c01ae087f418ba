"""
Helpers around statsmodels estimation.

- ``fit_checked`` turns silent optimizer trouble (ConvergenceWarning,
  ``mle_retvals["converged"] == False``, LinAlgError) into NonConvergenceError.
- ``select_best`` runs a declared candidate grid and returns the argmin of an
  information criterion. Candidates are tried in enumeration order and ties
  keep the earlier candidate, so the search is deterministic.
"""

import logging
import threading
import warnings
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Tuple

import numpy as np
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from forecast_harness.errors import InvalidParameterError, NonConvergenceError

logger = logging.getLogger(__name__)

# catch_warnings swaps process-global state; one capture window at a time
_WARNINGS_LOCK = threading.Lock()


@dataclass
class Candidate:
    """One point of a hyperparameter grid"""
    label: Dict[str, Any]
    fit: Callable[[], Any]


def fit_checked(fit: Callable[[], Any], model_name: str, max_iterations: int, **context):
    """
    Run ``fit`` and fail loud if the optimizer did not converge.

    Non-convergence warnings are promoted to NonConvergenceError; other
    library warnings are logged at DEBUG. Fits run one at a time so a
    warning is never attributed to a fit running on another thread.
    """
    with _WARNINGS_LOCK, warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            results = fit()
        except np.linalg.LinAlgError as e:
            raise NonConvergenceError(
                f"{model_name}: linear algebra failure during estimation",
                error=str(e),
                max_iterations=max_iterations,
                **context,
            ) from e

    convergence = [w for w in caught if issubclass(w.category, ConvergenceWarning)]
    for w in caught:
        if w not in convergence:
            logger.debug(f"{model_name}: {w.category.__name__}: {w.message}")

    retvals = getattr(results, "mle_retvals", None) or {}
    if convergence or retvals.get("converged") is False:
        message = str(convergence[0].message) if convergence else "optimizer reported converged=False"
        raise NonConvergenceError(
            f"{model_name}: estimation did not converge",
            detail=message,
            max_iterations=max_iterations,
            **context,
        )
    return results


def criterion_value(results, criterion: str) -> float:
    value = float(getattr(results, criterion))
    if not np.isfinite(value):
        raise NonConvergenceError("Information criterion is not finite", criterion=criterion, value=value)
    return value


def select_best(
    candidates: Iterable[Candidate],
    criterion: str,
    model_name: str,
) -> Tuple[Dict[str, Any], Any, float]:
    """
    Fit every candidate and return (label, results, score) of the minimum.

    Candidates that fail to converge or are invalid for the data are
    excluded from the comparison; if none survives NonConvergenceError is
    raised.
    """
    best = None
    tried = 0
    excluded = []

    for candidate in candidates:
        tried += 1
        try:
            results = candidate.fit()
            score = criterion_value(results, criterion)
        except (NonConvergenceError, InvalidParameterError) as e:
            logger.warning(f"{model_name}: excluding candidate {candidate.label}: {e}")
            excluded.append(candidate.label)
            continue

        logger.debug(f"{model_name}: candidate {candidate.label} {criterion}={score:.4f}")
        if best is None or score < best[2]:
            best = (candidate.label, results, score)

    if best is None:
        raise NonConvergenceError(
            f"{model_name}: no candidate model converged",
            candidates_tried=tried,
            excluded=excluded,
        )

    logger.info(f"{model_name}: selected {best[0]} ({criterion}={best[2]:.4f}) from {tried} candidates")
    return best
