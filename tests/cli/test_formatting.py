from temporaries.cli.formatting import format_table, format_value, human_time_diff, human_timeout


def test_human_time_diff_units():
    assert human_time_diff(0, 0) == "1 min"
    assert human_time_diff(0, 89) == "1 min"
    assert human_time_diff(0, 90) == "2 mins"
    assert human_time_diff(0, 3600) == "1 hour"
    assert human_time_diff(0, 7200) == "2 hours"
    assert human_time_diff(0, 86400 * 3) == "3 days"
    assert human_time_diff(0, 86400 * 14) == "2 weeks"
    assert human_time_diff(0, 86400 * 60) == "2 months"
    assert human_time_diff(0, 86400 * 365 * 2) == "2 years"


def test_human_time_diff_is_symmetric():
    assert human_time_diff(7200, 0) == human_time_diff(0, 7200)


def test_human_timeout():
    assert human_timeout(None, 1000) == "No Timeout"
    assert human_timeout(1000 + 7200, 1000) == "in 2 hours"
    assert human_timeout(1000, 1000 + 300) == "5 mins ago"


def test_format_value():
    assert format_value("plain") == "plain"
    assert format_value(3) == "3"
    assert format_value({"a": 1}) == '{\n    "a": 1\n}'
    assert format_value({"a": 1}, "json") == '{"a": 1}'
    assert format_value({"a": 1}, "yaml") == "a: 1"


def test_format_table():
    table = format_table(
        [{"Temporary": "key", "Value": {"x": 1}, "Expires": "No Timeout"}],
        ["Temporary", "Value", "Expires"],
    )

    assert table.splitlines() == [
        "+-----------+----------+------------+",
        "| Temporary | Value    | Expires    |",
        "+-----------+----------+------------+",
        '| key       | {"x": 1} | No Timeout |',
        "+-----------+----------+------------+",
    ]
