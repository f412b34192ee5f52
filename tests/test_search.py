from pixi_chooser.search import fuzzy_score, rank_package_names


def test_fuzzy_score_rejects_non_subsequences() -> None:
    assert fuzzy_score("xyz", "numpy") is None


def test_fuzzy_score_prefers_exact_and_prefix_matches() -> None:
    exact = fuzzy_score("numpy", "numpy")
    prefix = fuzzy_score("numpy", "numpy-base")
    scattered = fuzzy_score("numpy", "nu-mpy-stubs")

    assert exact is not None and prefix is not None and scattered is not None
    assert exact > prefix > scattered


def test_rank_package_names_orders_best_first_and_ties_by_name() -> None:
    names = ["pandas", "numpy-base", "numba", "numpy", "scipy"]

    assert rank_package_names("num", names) == [
        "numba",
        "numpy",
        "numpy-base",
    ]


def test_rank_package_names_with_blank_query_matches_nothing() -> None:
    assert rank_package_names("  ", ["numpy"]) == []
