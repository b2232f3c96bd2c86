#!/usr/bin/env python
'''
Compute the MV2H evaluation metrics of a transcription.

Usage:

./mv2h_eval.py REFERENCE.TXT ESTIMATED.TXT
./mv2h_eval.py -a REFERENCE.TXT ESTIMATED.TXT
'''

import argparse
import sys

import mv2h
import eval_utilities


def alignment_string(reference, estimate, alignment):
    '''Describe which transcribed onset groups were aligned to which ground
    truth onset groups'''
    lines = ['Aligned notes (transcribed -> ground truth):']
    aligned_to = {estimated: reference_index
                  for reference_index, estimated in enumerate(alignment)
                  if estimated is not None}

    non_aligned = []
    for index, group in enumerate(estimate.onset_groups):
        if index in aligned_to:
            lines.append('{} -> {}'.format(
                _group_string(group),
                _group_string(reference.onset_groups[aligned_to[index]])))
        else:
            non_aligned.append(group)

    lines.append('')
    lines.append('Non-aligned transcription notes:')
    lines.extend(_group_string(group) for group in non_aligned)
    return '\n'.join(lines)


def _group_string(group):
    return '[{}]'.format(', '.join(str(note) for note in group))


def evaluate(ref_file, est_file, align=False, print_alignment=False,
             penalty=1.0, n_jobs=1, verbose=False):
    '''Load data and perform the evaluation'''

    # load the data
    reference = mv2h.io.load_music(ref_file)
    estimate = mv2h.io.load_music(est_file)

    if not align:
        return mv2h.score.evaluate(reference, estimate)

    line_ending = '\n' if verbose else '\r'

    def progress(index, count, scores):
        print('Evaluating alignment {} / {}'.format(index + 1, count),
              end=line_ending)
        if verbose:
            if print_alignment:
                print(alignment_string(reference, estimate,
                                       graph_alignment(index)))
            print(scores)

    graph = None

    def graph_alignment(index):
        nonlocal graph
        if graph is None:
            graph = mv2h.alignment.AlignmentGraph.from_music(
                reference, estimate, non_alignment_penalty=penalty)
        return graph.alignment(index)

    best, best_alignment = mv2h.score.evaluate_alignment(
        reference, estimate, non_alignment_penalty=penalty, n_jobs=n_jobs,
        callback=progress)
    print()

    if print_alignment and best_alignment is not None:
        print('BEST ALIGNMENT')
        print('==============')
        print(alignment_string(reference, estimate, best_alignment))
        print()

    if verbose or print_alignment:
        print('BEST MV2H')
        print('=========')

    return best


def process_arguments():
    '''Argparse function to get the program parameters'''

    parser = argparse.ArgumentParser(description='MV2H transcription '
                                                 'evaluation')

    parser.add_argument('-a',
                        '--align',
                        dest='align',
                        default=False,
                        action='store_true',
                        help='Align the transcription to the reference '
                             'before evaluating it')

    parser.add_argument('-A',
                        '--print-alignment',
                        dest='print_alignment',
                        default=False,
                        action='store_true',
                        help='Align, and print the best alignment')

    parser.add_argument('-p',
                        '--penalty',
                        dest='penalty',
                        default=1.0,
                        type=float,
                        action='store',
                        help='Alignment cost of an unaligned onset group')

    parser.add_argument('-j',
                        '--jobs',
                        dest='n_jobs',
                        default=1,
                        type=int,
                        action='store',
                        help='Number of processes to evaluate alignments '
                             'with')

    parser.add_argument('-v',
                        '--verbose',
                        dest='verbose',
                        default=False,
                        action='store_true',
                        help='Print the score of every alignment')

    parser.add_argument('-o',
                        dest='output_file',
                        default=None,
                        type=str,
                        action='store',
                        help='Store results in json format')

    parser.add_argument('reference_file',
                        action='store',
                        help='path to the reference annotation')

    parser.add_argument('estimated_file',
                        action='store',
                        help='path to the estimated annotation')

    return vars(parser.parse_args(sys.argv[1:]))


if __name__ == '__main__':
    # Get the parameters
    parameters = process_arguments()

    # Compute all the scores
    scores = evaluate(parameters['reference_file'],
                      parameters['estimated_file'],
                      align=(parameters['align'] or
                             parameters['print_alignment']),
                      print_alignment=parameters['print_alignment'],
                      penalty=parameters['penalty'],
                      n_jobs=parameters['n_jobs'],
                      verbose=parameters['verbose'])
    eval_utilities.print_evaluation(scores.to_dict())

    if parameters['output_file']:
        print('Saving results to: ', parameters['output_file'])
        eval_utilities.save_results(scores.to_dict(),
                                    parameters['output_file'])
