# rdgen/analysis/__init__.py
"""Grammar analysis: token resolution, NULLABLE/FIRST/FOLLOW, branch decisions, cycle boxing.

Each stage reads only the frozen output of the previous one.
"""

from .symbols import SymbolTable
from .tokens import TokenMap, UNKNOWN_TOKEN, load_token_map, unknown_kind
from .first_follow import FFResult, compute_nullable_first_follow
from .branches import BranchCase, BranchDecision, decide_branch, decide_all
from .recursion import find_boxed_edges
