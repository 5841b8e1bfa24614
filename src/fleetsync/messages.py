"""Plain-text schedule summary for messaging apps."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from fleetsync._constants import DATE_FORMAT, DESTINATIONS_FIELD, DISPLAY_DATE_FORMAT, VEHICLES_FIELD


def _display_day(day: date | str) -> str:
    if isinstance(day, date):
        return day.strftime(DISPLAY_DATE_FORMAT)
    return datetime.strptime(day, DATE_FORMAT).strftime(DISPLAY_DATE_FORMAT)


def compose_schedule_message(schedule: Mapping[str, Any], day: date | str | None = None) -> str:
    """One block per vehicle, one line per destination.

    Returns an empty string when the schedule has no vehicles.
    """
    vehicles = schedule.get(VEHICLES_FIELD) or []
    if not vehicles:
        return ""

    lines = [
        f"🚛 *{schedule.get('name', '')}*",
        f"📅 Data: {_display_day(day if day is not None else schedule['date'])}",
        "",
    ]
    for index, vehicle in enumerate(vehicles, start=1):
        lines.append(f"🚚 Veículo {index}:")
        lines.append(f"   *Placa: {vehicle.get('plate', '')}*")
        lines.append(f"   👤 Motorista: {vehicle.get('driver', '')}")
        lines.append(f"   📍 Origem: {vehicle.get('origin', '')}")
        for dest_index, destination in enumerate(vehicle.get(DESTINATIONS_FIELD) or [], start=1):
            lines.append(f"   🎯 Destino {dest_index}: {destination.get('name', '')}")
            if destination.get("time"):
                lines.append(f"   🕐 Horário: {destination['time']}")
            if destination.get("observation"):
                lines.append(f"   💬 Obs: {destination['observation']}")
        lines.append("")

    lines.append(f"📈 Total de veículos: {len(vehicles)}")
    return "\n".join(lines).strip()
