"""Edit-distance similarity between a reference and a recognized string."""


def normalize_for_similarity(text: str) -> str:
    """Lowercase and trim a string before comparison."""
    return text.strip().lower()


def edit_distance(a: str, b: str) -> int:
    """Return the character-level Levenshtein distance between two strings.

    Insertions, deletions and substitutions each cost 1, except that a
    substitution involving a whitespace character is free. Runs in
    O(len(a) * len(b)) time keeping only two rows of the table, sized by
    the shorter string.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i] + [0] * len(b)
        a_space = ca.isspace()
        for j, cb in enumerate(b, 1):
            cost = 0 if a_space or cb.isspace() or ca == cb else 1
            current[j] = min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous = current
    return previous[-1]


def accuracy(expected: str, recognized: str) -> int:
    """Score how closely ``recognized`` matches ``expected``, from 0 to 100.

    Comparison is case-insensitive and ignores surrounding whitespace. Two
    empty strings score 0 so that an empty attempt is never rewarded.
    """
    expected_norm = normalize_for_similarity(expected)
    recognized_norm = normalize_for_similarity(recognized)

    longest = max(len(expected_norm), len(recognized_norm))
    if longest == 0:
        return 0
    if expected_norm == recognized_norm:
        return 100

    distance = edit_distance(expected_norm, recognized_norm)
    score = 100 * (longest - distance) // longest
    return max(0, min(100, score))
