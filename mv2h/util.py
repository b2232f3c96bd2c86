"""Utility sub-module for mv2h"""

import inspect
import math


def f_measure(precision, recall, beta=1.0):
    """Compute the f-measure from precision and recall scores.

    Parameters
    ----------
    precision : float in (0, 1]
        Precision
    recall : float in (0, 1]
        Recall
    beta : float > 0
        Weighting factor for f-measure
        (Default value = 1.0)

    Returns
    -------
    f_measure : float
        The weighted f-measure

    """
    if precision == 0 and recall == 0:
        return 0.0

    return (1 + beta**2) * precision * recall / ((beta**2) * precision + recall)


def precision_recall_f1(true_positives, false_positives, false_negatives):
    """Compute precision, recall and F-measure from match counts.

    Counts may be fractional (the voice metric normalizes them). Any
    quantity whose denominator is zero is reported as 0 rather than NaN.

    Parameters
    ----------
    true_positives : float >= 0
    false_positives : float >= 0
    false_negatives : float >= 0

    Returns
    -------
    precision : float
    recall : float
    f_measure : float

    """
    n_estimated = true_positives + false_positives
    n_reference = true_positives + false_negatives

    precision = true_positives / n_estimated if n_estimated > 0 else 0.0
    recall = true_positives / n_reference if n_reference > 0 else 0.0

    return precision, recall, f_measure(precision, recall)


def round_half_up(value):
    """Round to the nearest integer, with ties going towards +inf.

    Python's built-in ``round`` uses banker's rounding, which would make
    retimed events drift depending on parity.

    Parameters
    ----------
    value : float

    Returns
    -------
    rounded : int

    """
    return int(math.floor(value + 0.5))


def has_kwargs(function):
    r"""Determine whether a function has \*\*kwargs.

    Parameters
    ----------
    function : callable
        The function to test

    Returns
    -------
    True if function accepts arbitrary keyword arguments.
    False otherwise.
    """
    sig = inspect.signature(function)

    for param in list(sig.parameters.values()):
        if param.kind == param.VAR_KEYWORD:
            return True

    return False


def filter_kwargs(_function, *args, **kwargs):
    r"""Given a function and args and keyword args to pass to it, call the function
    but using only the keyword arguments which it accepts.  This is equivalent
    to redefining the function with an additional \*\*kwargs to accept slop
    keyword args.

    If the target function already accepts \*\*kwargs parameters, no filtering
    is performed.

    Parameters
    ----------
    _function : callable
        Function to call.  Can take in any number of args or kwargs
    *args
    **kwargs
        Arguments and keyword arguments to _function.

    Returns
    -------
    The result of ``_function(*args, **filtered_kwargs)``
    """
    if has_kwargs(_function):
        return _function(*args, **kwargs)

    # Get the list of function arguments
    function_args = inspect.signature(_function).parameters
    # Construct a dict of those kwargs which appear in the function
    filtered_kwargs = {}
    for kwarg, value in list(kwargs.items()):
        if kwarg in function_args:
            filtered_kwargs[kwarg] = value
    # Call the function with the supplied args and the filtered kwarg dict
    return _function(*args, **filtered_kwargs)
