"""
Model formulas and design matrices.

    from pyregkit.formula import Formula, build_design

    design = build_design(frame, "bmi ~ age + sex*smoker")
    design.X, design.column_names, design.row_index
"""

from pyregkit.formula.formula import Formula, Term
from pyregkit.formula.design import DesignMatrix, INTERCEPT, build_design

__all__ = [
    "Formula",
    "Term",
    "DesignMatrix",
    "INTERCEPT",
    "build_design",
]
