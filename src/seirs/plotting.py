"""
===========================================================
plotting.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================
Plots for SEIRS trajectories and contact matrices.

Functions take the tidy DataFrame from seirs.summary.to_frame
and return the matplotlib Figure; nothing is shown.

License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Optional, Sequence

COLORS = {
    'S': '#1f77b4',  # Blue
    'E': '#ff7f0e',  # Orange
    'I': '#d62728',  # Red
    'R': '#2ca02c',  # Green
    'N': '#000000',  # Black
}


def plot_compartments(df: pd.DataFrame, title: str = "SEIRS Compartment Dynamics",
                      save_path: Optional[str] = None) -> plt.Figure:
    """Compartment totals over time (left) and infectious prevalence (right)."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    ax = axes[0]
    for comp, label in (('S', 'Susceptible'), ('E', 'Exposed'), ('I', 'Infectious'), ('R', 'Recovered')):
        ax.plot(df['t'], df[comp], label=label, color=COLORS[comp], linewidth=2)
    ax.set_xlabel('Time (days)')
    ax.set_ylabel('Number of individuals')
    ax.set_title(title, fontweight='bold')
    ax.legend(loc='best', frameon=True)
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    prevalence = np.where(df['N'] > 0, df['I'] / df['N'].where(df['N'] > 0, 1.0), 0.0)
    ax.plot(df['t'], prevalence * 100, color=COLORS['I'], linewidth=2)
    ax.set_xlabel('Time (days)')
    ax.set_ylabel('Prevalence (%)')
    ax.set_title('Infectious Prevalence', fontweight='bold')
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    return fig


def plot_contact_matrix(contact, labels: Optional[Sequence[str]] = None,
                        save_path: Optional[str] = None) -> plt.Figure:
    """Heatmap of C[a][b] with contacting group on rows."""
    C = np.asarray(contact, dtype=float)
    labels = list(labels) if labels is not None else [str(a) for a in range(C.shape[0])]
    fig, ax = plt.subplots(figsize=(8, 7))
    sns.heatmap(C, ax=ax, cmap='viridis', xticklabels=labels, yticklabels=labels,
                cbar_kws={'label': 'Daily contacts'})
    ax.set_xlabel('Contacted age group')
    ax.set_ylabel('Age group')
    ax.set_title('Contact Matrix', fontweight='bold')
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
    return fig
