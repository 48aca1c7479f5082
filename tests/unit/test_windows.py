import pytest

from tollgate.core.windows import MAX_LIMIT, Window, WindowConfig


def test_windows_are_declared_in_evaluation_order() -> None:
    assert list(Window) == [
        Window.PER_SECOND,
        Window.PER_MINUTE,
        Window.PER_HOUR,
        Window.PER_DAY,
    ]
    assert [w.seconds for w in Window] == [1, 60, 3600, 86400]


def test_window_names_match_wire_names() -> None:
    assert Window.PER_SECOND == "per_second"
    assert Window("per_day") is Window.PER_DAY


def test_default_config_is_unlimited() -> None:
    assert WindowConfig().is_unlimited


def test_limits_are_ordered_pairs() -> None:
    config = WindowConfig(per_second=3, per_hour=7)

    assert config.limits() == [
        (Window.PER_SECOND, 3),
        (Window.PER_MINUTE, 0),
        (Window.PER_HOUR, 7),
        (Window.PER_DAY, 0),
    ]
    assert config.limit_for(Window.PER_HOUR) == 7
    assert not config.is_unlimited


def test_max_limit_is_accepted() -> None:
    assert WindowConfig(per_day=MAX_LIMIT).per_day == MAX_LIMIT


@pytest.mark.parametrize(
    "kwargs",
    [
        {"per_second": -1},
        {"per_day": MAX_LIMIT + 1},
    ],
)
def test_out_of_range_limits_are_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        WindowConfig(**kwargs)


@pytest.mark.parametrize("value", [1.5, "3", True, None])
def test_non_integer_limits_are_rejected(value: object) -> None:
    with pytest.raises(TypeError):
        WindowConfig(per_minute=value)


def test_config_is_immutable() -> None:
    config = WindowConfig(per_second=1)

    with pytest.raises(AttributeError):
        config.per_second = 2
