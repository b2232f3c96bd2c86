import json


def save_results(results, output_file):
    '''
    Write a result dictionary out as a .json file.

    :parameters:
        - results : dict
            Results dictionary, where keys are metric names and values are
            the corresponding scores
        - output_file : str
            Path to .json file to write to
    '''
    with open(output_file, 'w') as f:
        json.dump(results, f, indent=2)


def print_evaluation(results):
    '''
    Print out a results dict, one ``Name: value`` line per metric.

    :parameters:
        - results : dict
            Results dictionary, where keys are metric names and values are
            the corresponding scores
    '''
    for key, value in results.items():
        if isinstance(value, float):
            print('{}: {!r}'.format(key, value))
        else:
            print('{}: {}'.format(key, value))


def print_summary(summary):
    '''
    Print out a summary dict of per-metric means and standard deviations.

    :parameters:
        - summary : dict
            Summary dictionary, where keys are metric names and values are
            ``(mean, standard deviation)`` tuples
    '''
    for key, (mean, std) in summary.items():
        print('{}: mean={!r} stdev={!r}'.format(key, mean, std))
