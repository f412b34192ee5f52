from pixi_chooser.tokens import OperationTokenSource


def test_starting_a_token_makes_the_previous_one_stale() -> None:
    tokens = OperationTokenSource()

    first = tokens.start()
    assert tokens.is_stale(first) is False

    second = tokens.start()

    assert tokens.is_stale(first) is True
    assert tokens.is_stale(second) is False


def test_cancel_makes_the_current_token_stale_without_issuing_one() -> None:
    tokens = OperationTokenSource()
    token = tokens.start()

    tokens.cancel()

    assert tokens.is_stale(token) is True
    assert tokens.generation == token.generation + 1


def test_tokens_compare_by_generation() -> None:
    first = OperationTokenSource().start()
    second = OperationTokenSource().start()

    assert first == second
    assert first.generation == 1
