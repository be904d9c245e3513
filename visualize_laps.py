"""
Plot the RR tachogram of an orthostatic test with the lap windows shaded.

Each RR interval is drawn at its cumulative end time, which is also the time
the lap allocation uses to place it, so the shading shows which phase every
beat was counted in.
"""

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt

from session_reader import Session

PHASE_COLORS = {
    'moreThanMax': 'lightgrey',
    'lyingStabilization': 'lightblue',
    'lying': 'steelblue',
    'standingStabilization': 'navajowhite',
    'standing': 'orange',
}


def rr_end_times(session: Session) -> tuple[np.ndarray, np.ndarray]:
    rrs = np.array([rr for _, lap in session.laps for rr in lap.assigned_rrs], dtype=float)
    if len(rrs) == 0:
        return np.array([]), np.array([])
    return np.cumsum(rrs) / 1000.0, rrs


def plot_session(session: Session, output_path: Path) -> Path:
    times, rrs = rr_end_times(session)

    fig, ax = plt.subplots(figsize=(12, 4))
    if len(times) > 0:
        ax.plot(times, rrs, color='black', linewidth=1.0)

    for phase, lap in session.laps:
        if lap.duration == 0:
            continue
        ax.axvspan(lap.start / 1000.0, lap.finish / 1000.0,
                   color=PHASE_COLORS.get(phase, 'lightgrey'), alpha=0.35,
                   label=f"{phase} ({lap.average_hr:.0f} bpm, RMSSD {lap.rmssd:.1f} ms)")

    ax.set_title('Orthostatic test')
    ax.set_xlabel('Time from first lap start (sec)')
    ax.set_ylabel('RR interval (ms)')
    ax.grid(True, alpha=0.3, axis='y')
    ax.legend(loc='upper right', fontsize='small')

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return output_path
