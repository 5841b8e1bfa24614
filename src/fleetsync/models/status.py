"""Daily status records (``daily-status`` collection)."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from fleetsync.models._base import DayString, FleetBaseModel


class OperationStatus(StrEnum):
    PENDING = "Pendente"
    COMPLETED = "Concluído"


class StatusRecord(FleetBaseModel):
    """Flat per-day operation record.

    ``qtd_pallets`` is persisted, and kept equal to the sum of the two
    pallet fields by :func:`fleetsync.views.with_pallet_total` at write time.
    """

    id: str
    date: DayString
    operacao: str = ""
    numero: str = ""
    industria: str = ""
    horario_prev: str = ""
    placa: str = ""
    motorista: str = ""
    origem: str = ""
    destino: str = ""
    transport_ref: str = Field(default="", alias="transporteSAP")
    rotas: str = ""
    peso: str = ""
    caixas: str = ""
    responsavel: str = ""
    inicio: str = ""
    fim: str = ""
    pallets_refrig: str = ""
    pallets_secos: str = ""
    qtd_pallets: str = ""
    separacao: str = ""
    observacao: str = ""
    termo_pallet: str = ""
    cte: str = ""
    mdfe: str = ""
    ae: str = ""
    saida_origem: str = ""
    chegada_dest: str = ""
    doc_rel_fin: bool = False
    doc_termo_pallet: bool = False
    doc_protoc: bool = False
    doc_canhotos: bool = False
    status: OperationStatus = OperationStatus.PENDING


class ImportRow(FleetBaseModel):
    """One staged row parsed from pasted spreadsheet text."""

    transport_ref: str = ""
    route: str = ""
    weight: str = ""
    box_count: str = ""
