"""Phase resolution: which of a demoday's phases is running right now."""

from workflow.store import get_active_demoday, get_demoday, now_or, phases_for
from workflow.types import PHASE_FINAL_VOTE, PHASE_POPULAR_VOTE


def current_phase(phases, now):
    """Return the phase whose window contains ``now``, or None.

    Phases are checked in ascending ``phase_number`` order and both bounds
    are inclusive. Gaps between windows are legal, and so are overlaps in a
    misconfigured demoday: the lowest-numbered match wins.
    """
    for phase in sorted(phases, key=lambda p: p.phase_number):
        if phase.start_date <= now <= phase.end_date:
            return phase
    return None


def find_phase(phases, phase_number):
    for phase in phases:
        if phase.phase_number == phase_number:
            return phase
    return None


def window_is_open(phases, phase_number, now):
    phase = find_phase(phases, phase_number)
    return phase is not None and phase.start_date <= now <= phase.end_date


def phase_gate_open(required_number, resolved, configured=None):
    """Whether an action bound to ``required_number`` may run now.

    ``resolved`` is the demoday's current phase (or None) and ``configured``
    the phase numbers the demoday defines. A required phase missing from
    ``configured`` does not gate anything; ``configured=None`` treats every
    phase as configured.
    """
    if configured is not None and required_number not in configured:
        return True
    return resolved is not None and resolved.phase_number == required_number


def resolve_demoday_phase(demoday_id, now=None):
    get_demoday(demoday_id)
    return current_phase(phases_for(demoday_id), now_or(now))


def describe_current_phase(now=None):
    demoday = get_active_demoday()
    if demoday is None:
        return {
            'demoday': None,
            'current_phase': None,
            'phases': [],
            'is_voting_phase': False,
            'is_final_voting_phase': False,
        }

    phases = phases_for(demoday.id)
    phase = current_phase(phases, now_or(now))
    number = phase.phase_number if phase else None
    return {
        'demoday': demoday.to_dict(),
        'current_phase': phase.to_dict() if phase else None,
        'phases': [p.to_dict() for p in phases],
        'is_voting_phase': number == PHASE_POPULAR_VOTE,
        'is_final_voting_phase': number == PHASE_FINAL_VOTE,
    }
