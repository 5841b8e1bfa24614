from __future__ import annotations

import pytest

from fleetsync.importer import build_status_records, parse_pasted_rows
from fleetsync.models import ImportRow


def test_header_discarded_and_short_lines_skipped() -> None:
    rows = parse_pasted_rows("HEADER\nA\tB\t1,00\t2\nC\tD")
    assert rows == [ImportRow(transport_ref="A", route="B", weight="1,00", box_count="2")]


def test_fields_trimmed_and_extra_columns_ignored() -> None:
    text = "\n\nTRANSPORTE\tROTA\tPESO\tCAIXAS\n 4500123 \t Rota 7 \t 1.200,00\t 35 \textra\n"
    rows = parse_pasted_rows(text)
    assert len(rows) == 1
    assert rows[0].transport_ref == "4500123"
    assert rows[0].route == "Rota 7"
    assert rows[0].weight == "1.200,00"
    assert rows[0].box_count == "35"


@pytest.mark.parametrize("text", ["", "   ", "ONLY HEADER"])
def test_no_data_rows(text: str) -> None:
    assert parse_pasted_rows(text) == []


def test_build_status_records_fills_blank_pending_records() -> None:
    rows = [
        ImportRow(transport_ref="T1", route="R1", weight="10,0", box_count="3"),
        ImportRow(transport_ref="T2", route="R2", weight="20,0", box_count="4"),
    ]
    records = build_status_records(rows, "2024-05-02")

    assert len(records) == 2
    first, second = records
    assert first["transporteSAP"] == "T1"
    assert first["rotas"] == "R1"
    assert first["peso"] == "10,0"
    assert first["caixas"] == "3"
    assert first["status"] == "Pendente"
    assert first["date"] == "2024-05-02"
    assert first["placa"] == ""
    assert first["docCanhotos"] is False
    assert first["id"].startswith("2024-05-02-")
    assert first["id"].endswith("-0")
    assert second["id"].endswith("-1")
    assert first["id"].rsplit("-", 1)[0] == second["id"].rsplit("-", 1)[0]
