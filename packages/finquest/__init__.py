"""Public interface for the ``finquest`` package.

Symbol re-exports only; the logic lives in the service modules.
"""

from .balance import calculate_balance
from .challenges import (
    CATALOG,
    ChallengeDefinition,
    abandon_challenge,
    accept_challenge,
    available_challenges,
    evaluate_progress,
    grant_rewards_if_newly_completed,
    initial_progress,
    list_challenges,
    reevaluate_challenges,
)
from .dashboard import DashboardSummary, ReconcileResult, dashboard_summary, reconcile
from .errors import BackendFailure, FinquestError, NotFoundError, ValidationError
from .goals import (
    add_goal,
    calculate_overall_goal_progress,
    fund_goal,
    get_goal,
    list_goals,
    remove_goal,
    update_goal,
)
from .ledger import (
    add_transaction,
    get_by_period,
    get_categories,
    get_filtered_transactions,
    list_transactions,
    remove_transaction,
    update_transaction,
)
from .models import (
    AcceptChallengeResult,
    AchievementView,
    CascadeResult,
    ChallengeView,
    FundGoalResult,
    GoalInput,
    GoalView,
    LedgerSnapshot,
    ProfileView,
    TransactionInput,
    TransactionView,
)
from .persistence import Repositories
from .rewards import get_profile, grant_points, record_achievement, top_up_balance

__all__ = [
    # Ledger
    "add_transaction",
    "update_transaction",
    "remove_transaction",
    "get_by_period",
    "get_filtered_transactions",
    "get_categories",
    "list_transactions",
    "calculate_balance",
    # Goals
    "add_goal",
    "update_goal",
    "remove_goal",
    "get_goal",
    "list_goals",
    "fund_goal",
    "calculate_overall_goal_progress",
    # Challenges
    "CATALOG",
    "ChallengeDefinition",
    "accept_challenge",
    "abandon_challenge",
    "available_challenges",
    "list_challenges",
    "initial_progress",
    "evaluate_progress",
    "reevaluate_challenges",
    "grant_rewards_if_newly_completed",
    # Rewards and overview
    "grant_points",
    "record_achievement",
    "top_up_balance",
    "get_profile",
    "dashboard_summary",
    "reconcile",
    "DashboardSummary",
    "ReconcileResult",
    # Models
    "Repositories",
    "TransactionInput",
    "TransactionView",
    "GoalInput",
    "GoalView",
    "ChallengeView",
    "AchievementView",
    "ProfileView",
    "LedgerSnapshot",
    "CascadeResult",
    "FundGoalResult",
    "AcceptChallengeResult",
    # Errors
    "FinquestError",
    "ValidationError",
    "NotFoundError",
    "BackendFailure",
]
