# =============================================================================
# sector_core/data/models.py
# Workflow vocabulary and form payloads
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional


class SectorStatus(Enum):
    """Workflow stage of a sector, stored verbatim in sectors.current_status."""
    PERITAGEM_PENDENTE = "peritagemPendente"
    EM_EXECUCAO = "emExecucao"
    PRODUCAO_COMPLETA = "producaoCompleta"
    CHECAGEM_FINAL_PENDENTE = "checagemFinalPendente"
    CONCLUIDO = "concluido"
    SUCATEADO_PENDENTE = "sucateadoPendente"
    SUCATEADO = "sucateado"


class CycleOutcome(Enum):
    EM_ANDAMENTO = "EmAndamento"
    RECUPERADO = "Recuperado"
    SUCATEADO = "Sucateado"


class PhotoType(Enum):
    BEFORE = "before"
    AFTER = "after"
    TAG = "tag"
    SCRAP = "scrap"


@dataclass
class PhotoUpload:
    """A photo either still in memory (content) or already stored (url)."""
    filename: str
    content: Optional[bytes] = None
    url: Optional[str] = None
    photo_type: PhotoType = PhotoType.BEFORE


@dataclass
class ServiceSelection:
    """One row of the service checklist on the peritagem form."""
    service_id: str
    name: str
    selected: bool = False
    quantity: int = 1
    observations: Optional[str] = None
    photos: List[PhotoUpload] = field(default_factory=list)


@dataclass
class PeritagemForm:
    """Intake data collected for a new or edited sector."""
    tag_number: str = ""
    entry_invoice: str = ""
    entry_date: Optional[date] = None
    tag_photo_url: Optional[str] = None
    entry_observations: Optional[str] = None
    services: List[ServiceSelection] = field(default_factory=list)
    cycle_count: Optional[int] = None
    status: Optional[SectorStatus] = None

    @property
    def selected_services(self) -> List[ServiceSelection]:
        return [service for service in self.services if service.selected]
