#!/usr/bin/env python
'''
Combine many MV2H reports into the mean and standard deviation of each
metric.

Usage:

cat RESULTS/*.txt | ./mv2h_summary.py
./mv2h_summary.py RESULTS_1.TXT RESULTS_2.TXT ...
'''

import argparse
import collections
import sys

import numpy as np

import mv2h
import eval_utilities


def load_all(filenames):
    '''Concatenate the reports of every file, or of standard input if there
    are none'''
    if not filenames:
        return mv2h.io.load_scores(sys.stdin)

    scores = collections.OrderedDict()
    for filename in filenames:
        for name, values in mv2h.io.load_scores(filename).items():
            scores.setdefault(name, []).append(values)
    return collections.OrderedDict((name, np.concatenate(values))
                                   for name, values in scores.items())


def process_arguments():
    '''Argparse function to get the program parameters'''

    parser = argparse.ArgumentParser(description='Summarize MV2H reports')

    parser.add_argument('report_files',
                        nargs='*',
                        help='paths to MV2H reports (default: read from '
                             'standard input)')

    return vars(parser.parse_args(sys.argv[1:]))


if __name__ == '__main__':
    parameters = process_arguments()

    summary = mv2h.score.summarize(load_all(parameters['report_files']))
    eval_utilities.print_summary(summary)
