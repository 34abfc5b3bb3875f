"""
Coordinator for several forms submitted together.
"""

import logging
from typing import Any, List

from .exceptions import FormValidationError

logger = logging.getLogger(__name__)


class FormContainer:
    """
    Groups forms so one submit request reaches all of them.

    Forms register themselves when constructed with ``container=`` and
    unregister on close(). While registered, a form raises FormValidationError
    instead of silently refusing an invalid submit; the container collects
    these into a single error.
    """

    def __init__(self):
        self._forms: List[Any] = []

    @property
    def forms(self) -> List[Any]:
        return list(self._forms)

    def register_form(self, form: Any) -> None:
        if form not in self._forms:
            self._forms.append(form)
            logger.debug(f"Registered form {getattr(form, 'form_id', form)} ({len(self._forms)} total)")

    def unregister_form(self, form: Any) -> None:
        if form in self._forms:
            self._forms.remove(form)
            logger.debug(f"Unregistered form {getattr(form, 'form_id', form)}")

    def notify_submit(self, user_interacted: bool = True) -> int:
        """
        Submit every registered form in registration order.

        All forms are attempted even after one fails validation.

        Args:
            user_interacted: Forwarded to each form's submit

        Returns:
            Number of forms submitted

        Raises:
            FormValidationError: If at least one form was invalid
        """
        failed = []
        messages: List[str] = []
        message = None

        for form in list(self._forms):
            try:
                form.handle_container_submit(user_interacted)
            except FormValidationError as e:
                message = message or e.message
                messages.extend(e.messages)
                failed.extend(e.forms or [form])

        if failed:
            logger.warning(f"{len(failed)} of {len(self._forms)} form(s) failed validation")
            raise FormValidationError(message, messages, failed)

        logger.info(f"Submitted {len(self._forms)} form(s)")
        return len(self._forms)
