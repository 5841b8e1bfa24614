"""Row builders for tabular export.

Writing the spreadsheet file is left to the caller; these helpers only
produce ordered ``label -> value`` rows from derived-view output.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, Literal

from fleetsync._constants import DATE_FIELD, DESTINATIONS_FIELD, VEHICLES_FIELD
from fleetsync.models._base import parse_day

STATUS_EXPORT_LABELS: dict[str, str] = {
    "operacao": "OPERAÇÃO",
    "industria": "INDÚSTRIA",
    "horarioPrev": "HORÁRIO PREV.",
    "placa": "PLACA",
    "motorista": "MOTORISTA",
    "origem": "ORIGEM",
    "destino": "DESTINO",
    "transporteSAP": "TRANSPORTE SAP",
    "rotas": "ROTAS",
    "peso": "PESO",
    "caixas": "CAIXAS",
    "responsavel": "RESPONSÁVEL",
    "inicio": "INÍCIO",
    "fim": "FIM",
    "palletsRefrig": "PALLETS REFRIG.",
    "palletsSecos": "PALLETS SECOS",
    "qtdPallets": "QTD PALLETS",
    "separacao": "SEPARAÇÃO",
    "observacao": "OBSERVAÇÃO",
    "termoPallet": "TERMO PALLET",
    "cte": "CTE",
    "mdfe": "MDFE",
    "ae": "AE",
    "saidaOrigem": "SAÍDA ORIGEM",
    "chegadaDest": "CHEGADA DEST.",
    "docRelFin": "DOC. REL. FIN.",
    "docTermoPallet": "DOC. TERMO PALLET",
    "docProtoc": "DOC PROTOC.",
    "docCanhotos": "DOC CANHOTOS",
    "status": "STATUS",
    "date": "DATA",
}

ExportKind = Literal["schedule", "status"]
ExportPeriod = Literal["daily", "monthly"]

_FILENAME_STEMS: dict[tuple[ExportKind, ExportPeriod], str] = {
    ("schedule", "daily"): "Programacao_Diaria",
    ("schedule", "monthly"): "Programacao_Mensal",
    ("status", "daily"): "Status_Diario",
    ("status", "monthly"): "Status_Mensal",
}


def _cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if value is None:
        return ""
    return value


def status_export_rows(
    records: Iterable[Mapping[str, Any]],
    labels: Mapping[str, str] = STATUS_EXPORT_LABELS,
) -> list[dict[str, Any]]:
    return [{label: _cell(record.get(key)) for key, label in labels.items()} for record in records]


def schedule_export_rows(schedules: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """One row per vehicle; destination columns are ``"; "``-joined."""
    rows: list[dict[str, Any]] = []
    for schedule in schedules:
        for vehicle in schedule.get(VEHICLES_FIELD) or []:
            destinations = vehicle.get(DESTINATIONS_FIELD) or []
            rows.append(
                {
                    "PROGRAMAÇÃO": schedule.get("name", ""),
                    "DATA": schedule.get(DATE_FIELD, ""),
                    "PLACA": vehicle.get("plate", ""),
                    "MOTORISTA": vehicle.get("driver", ""),
                    "ORIGEM": vehicle.get("origin", ""),
                    "HORÁRIO ORIGEM": vehicle.get("originTime", ""),
                    "DESTINOS": "; ".join(d.get("name", "") for d in destinations),
                    "HORÁRIOS DESTINOS": "; ".join(d.get("time") or "" for d in destinations),
                    "OBSERVAÇÕES": "; ".join(d.get("observation") or "" for d in destinations),
                    "TRANSPORTE SAP": "; ".join(vehicle.get("transportRefs") or []),
                    "STATUS": vehicle.get("status", ""),
                }
            )
    return rows


def export_filename(kind: ExportKind, period: ExportPeriod, day: date | str) -> str:
    parsed = date.fromisoformat(parse_day(day))
    stamp = parsed.strftime("%d-%m-%Y") if period == "daily" else parsed.strftime("%m-%Y")
    return f"{_FILENAME_STEMS[(kind, period)]}_{stamp}.xlsx"
