"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Réconciliation du tableau de critères                            ║
║                                                                              ║
║  Opérations: move / update_value / delete / add_free_text                    ║
║                                                                              ║
║  INVARIANT:                                                                  ║
║  - Un id de critère est dans EXACTEMENT une collection                       ║
║    (available, essential, important, secondary)                              ║
║  - Chaque opération retourne un NOUVEAU tableau (l'ancien est intact)        ║
║  - id inconnu = no-op (événement de drag périmé), jamais une erreur          ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from typing import Optional, Tuple, Any, List

from models.criterion import (
    BoardSlot,
    PRIORITY_BUCKETS,
    SLOT_SEARCH_ORDER,
    CriteriaBoard,
    Criterion,
    FreeTextCriterion,
)
from services.criteria_catalog import is_predefined

logger = logging.getLogger("criteria_board")


def locate(board: CriteriaBoard, criterion_id: str) -> Optional[Tuple[BoardSlot, Criterion]]:
    """Cherche dans la réserve puis dans les 3 colonnes"""
    for slot in SLOT_SEARCH_ORDER:
        for criterion in board.slot(slot):
            if criterion.id == criterion_id:
                return slot, criterion
    return None


def all_ids(board: CriteriaBoard) -> List[str]:
    return [c.id for slot in SLOT_SEARCH_ORDER for c in board.slot(slot)]


def _copy(board: CriteriaBoard) -> CriteriaBoard:
    return board.model_copy(deep=True)


def move(
    board: CriteriaBoard,
    criterion_id: str,
    target: BoardSlot,
    source: Optional[BoardSlot] = None,
) -> CriteriaBoard:
    """
    Déplace un critère vers target (réserve ou colonne), ajouté en fin.
    No-op si source == target, si le critère y est déjà, ou si l'id est inconnu.
    """
    target = BoardSlot(target)
    if source is not None and BoardSlot(source) == target:
        return board

    found = locate(board, criterion_id)
    if found is None:
        logger.debug(f"move ignoré: critère {criterion_id} introuvable")
        return board

    origin, _ = found
    if origin == target:
        return board

    new_board = _copy(board)
    origin_list = new_board.slot(origin)
    index = next(i for i, c in enumerate(origin_list) if c.id == criterion_id)
    criterion = origin_list.pop(index)
    new_board.slot(target).append(criterion)
    return new_board


def update_value(board: CriteriaBoard, criterion_id: str, value: Any) -> CriteriaBoard:
    """
    Remplace la valeur du critère, sans changer sa colonne.
    Lève CriterionValueError si la valeur ne correspond pas au type.
    """
    found = locate(board, criterion_id)
    if found is None:
        return board

    slot, criterion = found
    updated = criterion.with_value(value)

    new_board = _copy(board)
    items = new_board.slot(slot)
    index = next(i for i, c in enumerate(items) if c.id == criterion_id)
    items[index] = updated
    return new_board


def delete(board: CriteriaBoard, criterion_id: str) -> CriteriaBoard:
    """
    Retire un critère de sa colonne.
    - Critère du catalogue -> retourne dans la réserve
    - Critère libre / synthétique -> supprimé définitivement
    """
    found = locate(board, criterion_id)
    if found is None:
        return board

    slot, criterion = found
    if slot == BoardSlot.AVAILABLE:
        return board

    new_board = _copy(board)
    items = new_board.slot(slot)
    items[:] = [c for c in items if c.id != criterion_id]

    if is_predefined(criterion_id):
        new_board.available.append(criterion.model_copy(deep=True))
    return new_board


def add_free_text(board: CriteriaBoard, text: str, bucket: BoardSlot) -> CriteriaBoard:
    """
    Ajoute un critère texte libre directement dans une colonne.
    Texte vide (après trim) -> no-op.
    """
    bucket = BoardSlot(bucket)
    if bucket not in PRIORITY_BUCKETS:
        raise ValueError(f"Colonne invalide pour un texte libre: {bucket.value}")

    label = (text or "").strip()
    if not label:
        return board

    new_board = _copy(board)
    new_board.slot(bucket).append(
        FreeTextCriterion(id=f"freetext-{uuid.uuid4().hex[:12]}", label=label)
    )
    return new_board
