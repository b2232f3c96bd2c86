'''
When the timing of a transcription cannot be trusted (for example, a score
transcribed from an unaligned performance), it is aligned to the ground
truth before being evaluated.

Both pieces are first split into onset groups: the notes sharing a value
onset time. A dynamic time warp over the two group sequences then finds
the alignments of minimal cost, where aligning two groups costs one minus
the F-measure of their pitch multisets, and leaving a ground truth group
unaligned or skipping a transcription group costs ``non_alignment_penalty``.

There are often exponentially many optimal alignments. Rather than listing
them, :class:`AlignmentGraph` stores them in a directed acyclic graph in
which every node knows how many optimal alignments pass through it. The
i-th alignment can then be built directly in time linear in its length,
and mapped back to its index.

Finally, :class:`TimeConverter` maps times from the transcription's clock to
the ground truth's clock, interpolating linearly between aligned onset
groups, and :func:`align` uses it to retime a whole transcription.

Conventions
-----------
An alignment is a list with one entry per ground truth onset group: the
index of the transcription onset group aligned to it, or ``None`` if it is
not aligned to any. Aligned indices are strictly increasing.
'''

import bisect

import numpy as np

from . import util


# Direction flags of the alignment matrix
VERTICAL = 1      # Ground truth group not aligned
HORIZONTAL = 2    # Transcription group skipped
DIAGONAL = 4      # Groups aligned

# Costs closer than this are considered tied
COST_TOLERANCE = 1e-9


def _pitch_histograms(groups, pitches):
    """Count the notes of each pitch in each group.

    Returns an array of shape (len(groups), len(pitches)).
    """
    column = {pitch: index for index, pitch in enumerate(pitches)}
    histograms = np.zeros((len(groups), len(pitches)), dtype=int)
    for row, group in enumerate(groups):
        for note in group:
            histograms[row, column[note.pitch]] += 1
    return histograms


def group_distances(reference_groups, estimated_groups):
    """Compute the cost of aligning every pair of onset groups.

    The cost is one minus the F-measure of the estimated group's pitches
    against the reference group's pitches, where the number of true
    positives of each pitch is the smaller of its two counts.

    Parameters
    ----------
    reference_groups : list of list of mv2h.music.Note
    estimated_groups : list of list of mv2h.music.Note

    Returns
    -------
    distances : np.ndarray, shape=(len(reference_groups), len(estimated_groups))
    """
    pitches = sorted({note.pitch for group in reference_groups + estimated_groups
                      for note in group})
    reference_histograms = _pitch_histograms(reference_groups, pitches)
    estimated_histograms = _pitch_histograms(estimated_groups, pitches)
    estimated_sizes = estimated_histograms.sum(axis=1)

    distances = np.ones((len(reference_groups), len(estimated_groups)))
    for row, histogram in enumerate(reference_histograms):
        true_positives = np.minimum(histogram, estimated_histograms).sum(axis=1)
        sizes = histogram.sum() + estimated_sizes
        # F-measure = 2 * TP / (2 * TP + FP + FN)
        hit = true_positives > 0
        distances[row, hit] = 1.0 - 2.0 * true_positives[hit] / sizes[hit]

    return distances


def distance_matrix(reference_groups, estimated_groups,
                    non_alignment_penalty=1.0):
    """Run the dynamic time warp over two onset group sequences.

    Cell ``(i, j)`` holds the minimal cost of aligning the first ``i``
    reference groups with the first ``j`` estimated groups. The first row
    and column (other than the origin) are unreachable, so every alignment
    begins by aligning the first groups of both pieces.

    Parameters
    ----------
    reference_groups : list of list of mv2h.music.Note
    estimated_groups : list of list of mv2h.music.Note
    non_alignment_penalty : float > 0
        The cost of leaving a group unaligned. Default is 1.0.

    Returns
    -------
    costs : np.ndarray, shape=(n + 1, m + 1)
        Cumulative alignment costs.
    directions : np.ndarray, shape=(n + 1, m + 1)
        Bit mask of every direction (:data:`VERTICAL`, :data:`HORIZONTAL`,
        :data:`DIAGONAL`) from which each cell is reached at minimal cost.
    """
    n_reference = len(reference_groups)
    n_estimated = len(estimated_groups)
    step_costs = group_distances(reference_groups, estimated_groups).tolist()

    costs = np.full((n_reference + 1, n_estimated + 1), np.inf)
    costs[0, 0] = 0.0
    directions = np.zeros((n_reference + 1, n_estimated + 1), dtype=np.uint8)

    # Plain lists are much faster than numpy for scalar access
    table = costs.tolist()
    for i in range(1, n_reference + 1):
        previous_row = table[i - 1]
        row = table[i]
        for j in range(1, n_estimated + 1):
            vertical = previous_row[j] + non_alignment_penalty
            horizontal = row[j - 1] + non_alignment_penalty
            diagonal = previous_row[j - 1] + step_costs[i - 1][j - 1]

            best = min(vertical, horizontal, diagonal)
            row[j] = best
            if best == np.inf:
                continue

            mask = 0
            if vertical - best <= COST_TOLERANCE:
                mask |= VERTICAL
            if horizontal - best <= COST_TOLERANCE:
                mask |= HORIZONTAL
            if diagonal - best <= COST_TOLERANCE:
                mask |= DIAGONAL
            directions[i, j] = mask

    return np.array(table), directions


class AlignmentGraph:
    """All of the minimal-cost alignments of two onset group sequences.

    Each node stands for arriving at one cell of the alignment matrix from
    one direction, and lists the nodes it can be reached from. Nodes are
    kept in flat lists (an arena) and referenced by index. A horizontal
    step is never taken directly after a vertical one, since both orders
    give the same alignment; every alignment therefore corresponds to
    exactly one path, and node counts are counts of distinct alignments.

    Counts are Python integers, so they do not overflow however many
    alignments there are.

    Parameters
    ----------
    directions : np.ndarray, shape=(n + 1, m + 1)
        Direction bit masks, as returned by :func:`distance_matrix`.
    """

    def __init__(self, directions):
        self.shape = directions.shape
        self._predecessors = []
        self._entries = []
        self._counts = []
        # (i, j, direction) -> node id
        self._nodes = {}

        n_reference, n_estimated = (size - 1 for size in self.shape)
        visited = _visited_cells(directions)

        self._origin = self._add_node((0, 0, 0), (), None, count=1)

        for i, j in sorted(visited):
            mask = int(directions[i, j])

            if mask & VERTICAL:
                self._add_node((i, j, VERTICAL),
                               self._cell_nodes(i - 1, j), (i - 1, None))
            if mask & HORIZONTAL:
                self._add_node((i, j, HORIZONTAL),
                               self._cell_nodes(i, j - 1, after_vertical=False),
                               None)
            if mask & DIAGONAL:
                self._add_node((i, j, DIAGONAL),
                               self._cell_nodes(i - 1, j - 1), (i - 1, j - 1))

        terminal = self._cell_nodes(n_reference, n_estimated)
        self._terminal = len(self._counts)
        self._predecessors.append(terminal)
        self._entries.append(None)
        self._counts.append(sum(self._counts[node] for node in terminal))

    @classmethod
    def from_music(cls, reference, estimate, non_alignment_penalty=1.0):
        """Build the graph of optimal alignments of two pieces.

        Parameters
        ----------
        reference : mv2h.music.Music
        estimate : mv2h.music.Music
        non_alignment_penalty : float > 0
            Default is 1.0.

        Returns
        -------
        graph : AlignmentGraph
        """
        _, directions = distance_matrix(
            reference.onset_groups, estimate.onset_groups,
            non_alignment_penalty=non_alignment_penalty)
        return cls(directions)

    def _add_node(self, key, predecessors, entry, count=None):
        if count is None:
            if not predecessors:
                return None
            count = sum(self._counts[node] for node in predecessors)
        node = len(self._counts)
        self._nodes[key] = node
        self._predecessors.append(tuple(predecessors))
        self._entries.append(entry)
        self._counts.append(count)
        return node

    def _cell_nodes(self, i, j, after_vertical=True):
        """The nodes of a cell, in the fixed order vertical, horizontal,
        diagonal."""
        if (i, j) == (0, 0):
            return (self._origin,)
        directions = ((VERTICAL, HORIZONTAL, DIAGONAL) if after_vertical
                      else (HORIZONTAL, DIAGONAL))
        return tuple(self._nodes[i, j, direction] for direction in directions
                     if (i, j, direction) in self._nodes)

    @property
    def count(self):
        """The number of distinct optimal alignments."""
        return self._counts[self._terminal]

    def __len__(self):
        # len() is limited to sys.maxsize; prefer count for huge graphs
        return self.count

    def alignment(self, index):
        """Build the ``index``-th optimal alignment.

        Parameters
        ----------
        index : int
            In ``[0, count)``.

        Returns
        -------
        alignment : list
            One entry per reference onset group: the index of the aligned
            estimated onset group, or None.
        """
        if not 0 <= index < self.count:
            raise IndexError('Alignment index {} out of range [0, {})'.format(
                index, self.count))

        entries = []
        node = self._terminal
        while self._predecessors[node]:
            if self._entries[node] is not None:
                entries.append(self._entries[node])

            for predecessor in self._predecessors[node]:
                if index < self._counts[predecessor]:
                    break
                index -= self._counts[predecessor]
            node = predecessor

        entries.reverse()
        return [estimated for _, estimated in entries]

    def index(self, alignment):
        """Find the index of an alignment; the inverse of :meth:`alignment`.

        Parameters
        ----------
        alignment : list
            One entry per reference onset group.

        Returns
        -------
        index : int
        """
        n_reference, n_estimated = (size - 1 for size in self.shape)
        if len(alignment) != n_reference:
            raise ValueError('Alignment has {} entries, expected {}'.format(
                len(alignment), n_reference))

        index = 0
        node = self._origin
        i = j = 0
        for direction in _canonical_steps(alignment, n_estimated):
            if direction == VERTICAL:
                i += 1
            elif direction == HORIZONTAL:
                j += 1
            else:
                i += 1
                j += 1

            next_node = self._nodes.get((i, j, direction))
            if next_node is None or node not in self._predecessors[next_node]:
                raise ValueError('Alignment {} is not optimal'.format(
                    alignment))

            for predecessor in self._predecessors[next_node]:
                if predecessor == node:
                    break
                index += self._counts[predecessor]
            node = next_node

        for predecessor in self._predecessors[self._terminal]:
            if predecessor == node:
                break
            index += self._counts[predecessor]
        else:
            raise ValueError('Alignment {} is not optimal'.format(alignment))

        return index

    def __iter__(self):
        for index in range(self.count):
            yield self.alignment(index)


def _visited_cells(directions):
    """The cells lying on some minimal-cost path back from the last cell."""
    last = (directions.shape[0] - 1, directions.shape[1] - 1)
    visited = set()
    stack = [last]
    while stack:
        i, j = stack.pop()
        if (i, j) in visited or (i, j) == (0, 0):
            continue
        mask = int(directions[i, j])
        if mask == 0:
            continue
        visited.add((i, j))
        if mask & VERTICAL:
            stack.append((i - 1, j))
        if mask & HORIZONTAL:
            stack.append((i, j - 1))
        if mask & DIAGONAL:
            stack.append((i - 1, j - 1))
    return visited


def _canonical_steps(alignment, n_estimated):
    """Convert an alignment into its path of steps through the matrix, with
    skipped estimated groups before unaligned reference groups."""
    steps = []
    j = 0
    pending_vertical = 0
    for estimated in alignment:
        if estimated is None:
            pending_vertical += 1
            continue
        if estimated < j:
            raise ValueError('Aligned indices must be increasing')
        steps.extend([HORIZONTAL] * (estimated - j))
        steps.extend([VERTICAL] * pending_vertical)
        steps.append(DIAGONAL)
        pending_vertical = 0
        j = estimated + 1
    steps.extend([HORIZONTAL] * (n_estimated - j))
    steps.extend([VERTICAL] * pending_vertical)
    return steps


class TimeConverter:
    """Convert times from an estimated piece's clock to the reference
    piece's clock, given an alignment of their onset groups.

    A time is first placed relative to the estimated onset groups: on a
    group if it equals that group's onset, otherwise between the groups
    around it. It is then interpolated linearly between the nearest aligned
    groups before and after it. Outside the aligned range, the rate of the
    two nearest aligned pairs is extrapolated, or with only one aligned
    pair, the time is shifted. With no aligned pairs, times are unchanged.

    Converted times are cached, so a converter should only be used with a
    single alignment.

    Parameters
    ----------
    reference : mv2h.music.Music
    estimate : mv2h.music.Music
    alignment : list
        As returned by :meth:`AlignmentGraph.alignment`.
    """

    def __init__(self, reference, estimate, alignment):
        reference_times = [group[0].value_onset_time
                           for group in reference.onset_groups]
        self._estimated_times = [group[0].value_onset_time
                                 for group in estimate.onset_groups]
        # (estimated time, reference time) of each aligned group pair
        self._anchors = [(self._estimated_times[estimated],
                          reference_times[reference_index])
                         for reference_index, estimated in enumerate(alignment)
                         if estimated is not None]
        self._anchor_indices = [estimated for estimated in alignment
                                if estimated is not None]
        self._cache = {}

    def __call__(self, time):
        converted = self._cache.get(time)
        if converted is None:
            converted = self._convert(time)
            self._cache[time] = converted
        return converted

    def _convert(self, time):
        if not self._anchors:
            return time

        # Position of the time among the estimated onset groups: a group
        # index if it is exactly on one, or halfway between two otherwise
        position = bisect.bisect_left(self._estimated_times, time)
        if (position < len(self._estimated_times) and
                self._estimated_times[position] == time):
            group_index = position
        else:
            group_index = position - 0.5

        split = bisect.bisect_left(self._anchor_indices, group_index)
        if (split < len(self._anchor_indices) and
                self._anchor_indices[split] == group_index):
            return self._anchors[split][1]

        previous = self._anchors[:split]
        following = self._anchors[split:]

        if not previous:
            if len(following) >= 2:
                return _interpolate(time, following[0], following[1])
            return time - following[0][0] + following[0][1]

        if not following:
            if len(previous) >= 2:
                return _interpolate(time, previous[-2], previous[-1])
            return time - previous[-1][0] + previous[-1][1]

        return _interpolate(time, previous[-1], following[0])


def _interpolate(time, first_anchor, second_anchor):
    """Map a time through the line defined by two (estimated time, reference
    time) anchors."""
    estimated_first, reference_first = first_anchor
    estimated_second, reference_second = second_anchor
    rate = ((reference_second - reference_first) /
            (estimated_second - estimated_first))
    return util.round_half_up(rate * (time - estimated_first) +
                              reference_first)


def align(reference, estimate, alignment):
    """Retime an estimated piece onto the reference piece's clock.

    Parameters
    ----------
    reference : mv2h.music.Music
    estimate : mv2h.music.Music
    alignment : list
        As returned by :meth:`AlignmentGraph.alignment`.

    Returns
    -------
    aligned : mv2h.music.Music
        A new piece; ``estimate`` is not modified.
    """
    return estimate.map_times(TimeConverter(reference, estimate, alignment))
