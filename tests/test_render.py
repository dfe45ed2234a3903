import pytest

from zabbix_panels.render import (
    StatusMessage,
    render_problem_table,
    render_trend_list,
    severity_html,
)
from zabbix_panels.timeutils import unix_to_local_time


def test_status_message_color_follows_level():
    assert StatusMessage("info", "x").color == "#333"
    assert StatusMessage("success", "x").color == "green"
    assert StatusMessage("warning", "x").color == "orange"
    assert StatusMessage("error", "x").color == "red"
    assert StatusMessage("alert", "x").color == "red"


def test_status_message_rejects_unknown_level():
    with pytest.raises(ValueError):
        StatusMessage("loud", "x")


def test_severity_html_out_of_range():
    assert severity_html(7) == '<span class="severity-7">Desconocido</span>'
    assert severity_html("4") == '<span class="severity-4">Alto</span>'


def test_trend_list_keeps_order_and_rounds():
    trends = [
        {"clock": "1714550400", "num": "60", "value_avg": "12.345", "value_min": "1", "value_max": "20.999"},
        {"clock": "1714554000", "num": "60", "value_avg": "8", "value_min": "0.5", "value_max": "9.25"},
    ]
    html = render_trend_list(trends)
    assert html.count('<div class="traffic-item">') == 2
    assert "Promedio de Carga: <strong>12.35</strong> (Min: 1.00, Max: 21.00)" in html
    assert "Promedio de Carga: <strong>8.00</strong> (Min: 0.50, Max: 9.25)" in html
    assert html.index("12.35") < html.index("8.00")
    assert unix_to_local_time("1714550400") in html


def test_problem_table_rows():
    problems = [
        {"hosts": [{"name": "Radar <Norte>"}], "name": "Sin señal", "opdata": "", "severity": "5", "clock": "1714550400"},
        {"hosts": [], "name": "Latencia alta", "opdata": "120 ms", "severity": "9", "clock": "0"},
    ]
    html = render_problem_table(problems)
    assert html.startswith("<table><thead><tr><th>Host Afectado</th>")
    assert html.count("<tr>") == 3
    assert "<strong>Radar &lt;Norte&gt;</strong>" in html
    assert '<span class="severity-5">Desastre</span>' in html
    assert "<strong>Host Desconocido</strong>" in html
    assert "<td>120 ms</td>" in html
    assert '<span class="severity-9">Desconocido</span>' in html
    assert "<td>N/A</td>" in html
    assert html.index("Radar") < html.index("120 ms")
