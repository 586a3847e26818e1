"""
Display helpers for solved price grids

format_grid / display_grid dump the grid as fixed-point text, one row per spot
node and one column per time node. plot_results draws the value surface, the
value today against the payoff and the early-exercise frontier.
"""

import sys
from typing import Optional, TextIO

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  (registers the 3d projection)


def format_grid(grid: np.ndarray, precision: int = 3, width: int = 8) -> str:
    """Fixed-point text of a 2D grid, rows = spot index, columns = time index"""
    lines = []
    for row in np.atleast_2d(grid):
        lines.append(" ".join(f"{value:{width}.{precision}f}" for value in row))
    return "\n".join(lines)


def display_grid(solver, precision: int = 3, width: int = 8,
                 file: Optional[TextIO] = None):
    """Print the grid of a GridSolver"""
    print(format_grid(solver.grid, precision=precision, width=width),
          file=file or sys.stdout)


def plot_results(solver, show: bool = True):
    """
    Plot the results of a solved GridSolver

    Parameters:
    -----------
    solver : GridSolver
        Solver whose grid is plotted (solved on demand)
    show : bool
        Call plt.show() once the figure is drawn

    Returns:
    --------
    matplotlib.figure.Figure
    """
    solver.solve()
    request = solver.request
    S_grid, t_grid, V_grid = solver.spot_grid, solver.time_grid, solver.grid
    style = request.exercise_type.name.title()
    kind = request.contract_type.name.title()

    sns.set_palette("husl")
    fig = plt.figure(figsize=(18, 6))

    # 1. 3D Surface plot
    ax1 = fig.add_subplot(131, projection='3d')
    S_mesh, T_mesh = np.meshgrid(S_grid, t_grid)
    surf = ax1.plot_surface(S_mesh, T_mesh, V_grid.T, cmap='viridis', alpha=0.8)  # type: ignore
    ax1.set_xlabel('Stock Price (S)')
    ax1.set_ylabel('Time (t)')
    ax1.set_zlabel('Option Value (V)')  # type: ignore
    ax1.set_title(f'{style} {kind} Option Value')
    fig.colorbar(surf, ax=ax1, shrink=0.5)

    # 2. Value today against the payoff
    ax2 = fig.add_subplot(132)
    ax2.plot(S_grid, V_grid[:, 0], 'b-', linewidth=2, label=f't = {t_grid[0]:.2f}')
    ax2.plot(S_grid, V_grid[:, -1], 'k--', linewidth=2, alpha=0.7, label='Payoff')
    ax2.axvline(request.spot, color='r', linestyle=':', alpha=0.7, label='Spot')
    ax2.set_xlabel('Stock Price (S)')
    ax2.set_ylabel('Option Value (V)')
    ax2.set_title('Option Value vs Stock Price')
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    # 3. Exercise boundary
    ax3 = fig.add_subplot(133)
    if request.is_american:
        ax3.plot(t_grid, solver.exercise_boundary(), 'r-', linewidth=2)
        ax3.set_ylabel('Exercise Boundary (S*)')
        ax3.set_title('Exercise Boundary Evolution')
    else:
        ax3.plot(t_grid, V_grid[solver.spot_index, :], 'g-', linewidth=2)
        ax3.set_ylabel('Option Value (V)')
        ax3.set_title('Value at Spot over Time')
    ax3.set_xlabel('Time (t)')
    ax3.grid(True, alpha=0.3)

    fig.tight_layout()
    if show:
        plt.show()
    return fig
