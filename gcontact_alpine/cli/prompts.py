"""Interactive answers to the questions a run asks."""

from pathlib import Path
from typing import Optional

import click

from gcontact_alpine.cli.formatters import show_conflict, show_conflicts
from gcontact_alpine.errors import InputError
from gcontact_alpine.i18n.messages import MessageCatalog, MessageId
from gcontact_alpine.sync.conflict import Conflict, Resolution


class ClickDecisionProvider:
    """
    Asks the user on the terminal.

    Attributes:
        catalog: Message catalog for prompt texts
        assume_yes: Confirm overwrites without asking
    """

    def __init__(self, catalog: MessageCatalog, assume_yes: bool = False):
        self.catalog = catalog
        self.assume_yes = assume_yes

    def _ask(self, message_id: MessageId) -> str:
        """
        Read one answer.

        Raises:
            InputError: If no answer can be read (end of input, interrupt)
        """
        try:
            answer: str = click.prompt(
                self.catalog.get(message_id),
                default="",
                show_default=False,
                prompt_suffix=" ",
            )
        except (click.Abort, EOFError) as e:
            raise InputError("no answer could be read") from e
        return answer

    def confirm_overwrite(self, path: Path) -> bool:
        if self.assume_yes:
            return True
        click.echo(str(path))
        return self._ask(MessageId.OVERWRITE_OR_NOT).strip().lower() in ("y", "yes")

    def choose_resolution(self, conflict: Conflict) -> Optional[Resolution]:
        show_conflict(conflict, self.catalog.get(MessageId.UPDATE_MODE))
        return Resolution.from_choice(self._ask(MessageId.SELECT_SOURCE))

    def choose_global_resolution(
        self, conflicts: list[Conflict]
    ) -> Optional[Resolution]:
        show_conflicts(conflicts, self.catalog.get(MessageId.UPDATE_MODE))
        return Resolution.from_choice(self._ask(MessageId.SELECT_SOURCE))
