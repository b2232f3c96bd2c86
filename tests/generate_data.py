#!/usr/bin/env python
"""
Generate data for regression tests.
This is a pretty specialized file and should probably only be used if you know
what you're doing.
It expects the following directory structure for data:
    In data/mv2h there are a bunch of file pairs of pieces of music.
    The reference piece is ref*.txt, the estimated one is est*.txt.
    So, e.g., we expect to find data/mv2h/ref00.txt and data/mv2h/est00.txt.
    The resulting scores dict will be written to output*.json.
    So, from the example above it would be written to data/mv2h/output00.json

To use this script, run it as a command-line program from the tests
directory:
    ./generate_data.py
Pass --align to evaluate with alignment instead, writing aligned*.json.
"""

import glob
import json
import os
import sys

import mv2h


DATA_GLOB = "data/mv2h/{}*.txt"


if __name__ == "__main__":
    align = "--align" in sys.argv[1:]

    ref_files = sorted(glob.glob(DATA_GLOB.format("ref")))
    est_files = sorted(glob.glob(DATA_GLOB.format("est")))
    # Cycle through file pairs
    for ref_file, est_file in zip(ref_files, est_files):
        print(f"Generating data for {ref_file}")
        reference = mv2h.io.load_music(ref_file)
        estimate = mv2h.io.load_music(est_file)
        if align:
            scores, _ = mv2h.score.evaluate_alignment(reference, estimate)
        else:
            scores = mv2h.score.evaluate(reference, estimate)
        # Write out the resulting scores dict
        output_file = ref_file.replace("ref", "aligned" if align else "output")
        output_file = os.path.splitext(output_file)[0] + ".json"
        with open(output_file, "w") as f:
            json.dump(scores.to_dict(), f)
