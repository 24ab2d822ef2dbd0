"""
Progress Stepper — 从 visit 快照推导当前步骤。

纯函数，只看 status / notes / prescription.medicines 三个字段；
不缓存、不落库，每次数据变化后重新计算。
"""

from .types import COMPLETED, IN_PROGRESS, WAITING

STEP_ADD_NOTES = 0
STEP_GENERATE_PRESCRIPTION = 1
STEP_PRINT = 2
STEP_DONE = 3

VISIT_STEPS = [
    {'step': STEP_ADD_NOTES, 'label': 'Add Notes'},
    {'step': STEP_GENERATE_PRESCRIPTION, 'label': 'Generate Prescription'},
    {'step': STEP_PRINT, 'label': 'Print'},
    {'step': STEP_DONE, 'label': 'Done'},
]


def step(visit) -> int:
    """
    优先级从上到下，命中即返回：
      COMPLETED                  → 3 Done
      已加载处方且药品非空        → 2 Print
      备注非空白                  → 1 Generate Prescription
      其他                        → 0 Add Notes
    """
    if visit is None:
        return STEP_ADD_NOTES
    if visit.status == COMPLETED:
        return STEP_DONE

    prescription = visit.prescription
    if prescription is not None and prescription.medicines:
        return STEP_PRINT
    if visit.notes and visit.notes.strip():
        return STEP_GENERATE_PRESCRIPTION
    return STEP_ADD_NOTES


def allowed_actions(visit) -> list[str]:
    """界面按钮的可用性，由 status + step 推导。"""
    if visit is None:
        return []
    if visit.status == WAITING:
        return ['start_consultation']
    if visit.status == COMPLETED:
        return ['print_preview']

    actions = ['save_notes', 'save_prescription']
    if visit.status == IN_PROGRESS and step(visit) >= STEP_GENERATE_PRESCRIPTION:
        actions += ['finish_visit', 'print', 'send_whatsapp']
    return actions
