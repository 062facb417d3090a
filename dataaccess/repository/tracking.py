"""
Untracked reads: statements carrying the ``disable_tracking`` execution option
are run in a throwaway session on the owner's connection, so the entities
they return are detached and never flushed by the owner session.
"""

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session

from .filters import IGNORE_QUERY_FILTERS

DISABLE_TRACKING = "disable_tracking"


@event.listens_for(Session, "do_orm_execute")
def _execute_untracked(execute_state: ORMExecuteState):
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
        or not execute_state.execution_options.get(DISABLE_TRACKING, False)
    ):
        return None

    owner = execute_state.session
    # Global filters were applied to this statement by the owner session already
    statement = execute_state.statement.execution_options(
        **{DISABLE_TRACKING: False, IGNORE_QUERY_FILTERS: True}
    )
    untracked = Session(bind=owner.connection(bind_arguments=execute_state.bind_arguments))
    try:
        frozen = untracked.execute(statement, execute_state.parameters).freeze()
    finally:
        # Closing detaches everything loaded; the shared connection stays open
        untracked.close()
    return frozen()
