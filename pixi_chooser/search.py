from __future__ import annotations

from collections.abc import Iterable


def fuzzy_score(query: str, candidate: str) -> int | None:
    """Score a candidate using subsequence matching; higher scores are better."""
    query = query.casefold().strip()
    candidate = candidate.casefold()
    if not query:
        return 0

    cursor = -1
    gap_penalty = 0
    run_length = 0
    longest_run = 0

    for char in query:
        index = candidate.find(char, cursor + 1)
        if index == -1:
            return None
        if cursor != -1:
            gap_penalty += index - cursor - 1
        if index == cursor + 1:
            run_length += 1
        else:
            run_length = 1
        longest_run = max(longest_run, run_length)
        cursor = index

    exact_bonus = 200 if candidate == query else 0
    prefix_bonus = 120 if candidate.startswith(query) else 0
    length_penalty = len(candidate) - len(query)
    return (
        exact_bonus
        + prefix_bonus
        + (longest_run * 20)
        - (gap_penalty * 2)
        - length_penalty
    )


def rank_package_names(query: str, package_names: Iterable[str]) -> list[str]:
    """Return matching names, best match first; an empty query matches nothing."""
    if not query.strip():
        return []

    scored_results: list[tuple[int, str]] = []
    for package_name in package_names:
        score = fuzzy_score(query, package_name)
        if score is not None:
            scored_results.append((score, package_name))

    scored_results.sort(key=lambda item: (-item[0], item[1]))
    return [package_name for _, package_name in scored_results]
