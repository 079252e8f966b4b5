import logging

import numpy as np
from scipy.optimize import least_squares

from kite_models.setup.kite import SteadyStateError

logger = logging.getLogger(__name__)


def solve_steady_state(objective_function, x0, settings, weights=None, verbose=0):
    """Find the parameter vector for which the objective function (the acceleration residual) vanishes.

    The square system is solved with a trust region least squares method and
    finite difference Jacobians, starting from x0.

    Parameters:
    objective_function (callable): Maps the parameter vector to the residual vector.
    x0 (np.ndarray): Initial guess, normally all zeros.
    settings (Settings): Provides x_tol, f_tol and max_iter.
    weights (np.ndarray, optional): Row weights of the least squares problem, e.g. the
        particle masses to balance forces instead of accelerations. The tolerance
        check always uses the unweighted residual.

    Returns:
    np.ndarray: The solution vector.

    Raises:
    SteadyStateError: If the largest residual entry exceeds settings.f_tol.
    """
    if weights is None:
        fun = objective_function
    else:
        weights = np.asarray(weights, dtype=float)

        def fun(x):
            return weights * objective_function(x)

    opt_res = least_squares(
        fun,
        np.asarray(x0, dtype=float),
        x_scale="jac",
        xtol=settings.x_tol,
        ftol=settings.x_tol,
        gtol=settings.x_tol,
        max_nfev=settings.max_iter,
        verbose=verbose,
    )
    residual = opt_res.fun if weights is None else objective_function(opt_res.x)
    max_residual = np.max(np.abs(residual))
    if not max_residual <= settings.f_tol:
        logger.warning(
            "Steady state not found after %d evaluations, max residual %.3g: %s",
            opt_res.nfev,
            max_residual,
            opt_res.message,
        )
        raise SteadyStateError(
            f"Steady state solver did not converge, max residual {max_residual:.3g} > {settings.f_tol:.3g}",
            result=opt_res,
        )
    logger.info("Steady state found after %d evaluations, max residual %.3g", opt_res.nfev, max_residual)
    return opt_res.x
