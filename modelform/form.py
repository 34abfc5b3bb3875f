"""
Form engine: field resolution, rendering, change tracking and submission.

A Form owns one model instance and the set of fields changed since the last
submit. All work happens on the caller's thread; overlapping submit requests
(for example a handler that submits again) are queued and run one after the
other.
"""

import asyncio
import inspect
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Sequence, Set

from .attributes import Display, find_attribute
from .binding import Binding, bind
from .config_loader import get_config_value, load_config
from .diff_utils import format_changes_for_log, summarize_changes
from .exceptions import FormError, FormValidationError
from .fields import FieldIdentifier, FormField, GeneratorContext, GeneratorField, ResolvedField, reconcile
from .layout import NO_ROW, RowGroup, cell_css_class, group_by_row, row_css_class
from .resolver import describe
from .validation import AlwaysValid, PydanticValidator, ValidationContext, Validator
from .widgets import DispatchContext, WidgetKind

logger = logging.getLogger(__name__)

FILTER_ROW_ATTRIBUTE = "data-is-filterrow"
ENTER_KEY = "Enter"


@dataclass
class FormValueChangedArgs:
    field_name: str
    new_value: Any
    model: Any


@dataclass
class FormSubmitArgs:
    """
    Argument of the valid-submit handler.

    Attributes:
        model: The submitted model
        change_set: Field name to current value for every field edited since
            the previous submit
        validation_context: Result of validating the model
        user_interacted: True when the submit came from user input
        changes: Old/new summary of the change set
    """
    model: Any
    change_set: Dict[str, Any]
    validation_context: ValidationContext
    user_interacted: bool
    changes: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RenderedField:
    """Everything a renderer needs for one field cell."""
    field: ResolvedField
    input_id: str
    label: Optional[str] = None
    binding: Optional[Binding] = None
    content: Any = None
    cell_class: Optional[str] = None
    cell_style: Any = None
    label_class: Optional[str] = None
    input_wrapper_class: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    @property
    def kind(self) -> Optional[WidgetKind]:
        if self.binding is None or self.binding.widget is None:
            return None
        return self.binding.widget.kind


@dataclass
class RenderedRow:
    key: int
    css_class: Optional[str]
    fields: List[RenderedField]


@dataclass
class RenderedForm:
    rows: List[RenderedRow]
    is_in_table_row: bool = False
    css_class: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    show_validation_summary: bool = True
    validation_messages: List[str] = field(default_factory=list)

    @property
    def fields(self) -> List[RenderedField]:
        return [f for row in self.rows for f in row.fields]


def _loop_is_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def _blocking_wait_error() -> FormError:
    return FormError(
        "Cannot wait for an asynchronous handler inside a running event loop",
        recovery_suggestions=["Use submit_async() from asynchronous code"]
    )


def _wait_for(awaitable: Awaitable) -> Any:
    """Run an awaitable to completion from synchronous code."""
    if not _loop_is_running():
        async def _await():
            return await awaitable
        return asyncio.run(_await())

    if inspect.iscoroutine(awaitable):
        awaitable.close()
    raise _blocking_wait_error()


class Form:
    """
    Editable form over a typed model or a dictionary bag.

    Args:
        model: Object or dictionary being edited; never copied
        fields: Explicit fields; when empty, every model property is rendered
        validator: Validation engine (defaults to PydanticValidator)
        container: Optional FormContainer coordinating several forms
        on_valid_submit: Called with FormSubmitArgs after a valid submit
        on_value_changed: Called with FormValueChangedArgs after each edit
        is_in_table_row: Render cells only, without rows or a form element
        additional_attributes: Attributes of the form element; the
            "data-is-filterrow" key marks a filter row
        enable_validation: Overrides the configured default
        grid_context: Passed through to complex field templates
        config: Configuration dictionary (defaults to load_config())
    """

    def __init__(self, model: Any, fields: Optional[Sequence[FormField]] = None, *,
                 validator: Optional[Validator] = None,
                 container: Any = None,
                 on_valid_submit: Optional[Callable[[FormSubmitArgs], Any]] = None,
                 on_value_changed: Optional[Callable[[FormValueChangedArgs], Any]] = None,
                 is_in_table_row: bool = False,
                 additional_attributes: Optional[Dict[str, Any]] = None,
                 enable_validation: Optional[bool] = None,
                 grid_context: Any = None,
                 config: Optional[Dict[str, Any]] = None):
        self.model = model
        self.field_list: List[FormField] = list(fields or [])
        self.config = config if config is not None else load_config()
        self.validator = validator if validator is not None else PydanticValidator()
        self.on_valid_submit = on_valid_submit
        self.on_value_changed = on_value_changed
        self.is_in_table_row = is_in_table_row
        self.additional_attributes = dict(additional_attributes or {})
        self.grid_context = grid_context
        if enable_validation is None:
            enable_validation = get_config_value('form', 'enable_validation', True, config=self.config)
        self.enable_validation = enable_validation
        self.form_id = uuid.uuid4().hex[:12]
        self.last_validation: Optional[ValidationContext] = None

        # insertion-ordered set
        self._changed: Dict[FieldIdentifier, None] = {}
        self._baseline: Dict[str, Any] = {}
        self._busy = False
        self._pending: Deque[bool] = deque()
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        self.container = container
        if container is not None:
            container.register_form(self)

        logger.info(f"Form {self.form_id} created for {type(model).__name__}")

    # Field list management

    def register_field(self, form_field: FormField) -> None:
        self.field_list.append(form_field)

    def unregister_field(self, form_field: FormField) -> None:
        if form_field in self.field_list:
            self.field_list.remove(form_field)

    def clear_fields(self) -> None:
        self.field_list.clear()

    # State

    @property
    def is_filter_row(self) -> bool:
        return FILTER_ROW_ATTRIBUTE in self.additional_attributes

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._changed)

    def dispatch_context(self) -> DispatchContext:
        return DispatchContext(
            is_filter_row=self.is_filter_row,
            css_class=get_config_value('widgets', 'css_class', 'm-form-control', config=self.config),
            null_description=get_config_value('widgets', 'null_description', '', config=self.config),
        )

    # Rendering

    def resolve_fields(self) -> List[ResolvedField]:
        return reconcile(self.field_list, self.model)

    def _input_id(self, resolved: ResolvedField, index: int) -> str:
        if resolved.name:
            return f"{self.form_id}-{resolved.name}"
        return f"{self.form_id}-field-{index}"

    def _label(self, resolved: ResolvedField) -> str:
        display = find_attribute(resolved.attributes, Display)
        return display.name if display is not None else resolved.name

    def _render_field(self, resolved: ResolvedField, group: RowGroup, index: int) -> RenderedField:
        input_id = self._input_id(resolved, index)
        rendered = RenderedField(field=resolved, input_id=input_id)
        style_key = get_config_value('widgets', 'table_cell_style_key', None, config=self.config)

        if self.is_in_table_row:
            rendered.cell_style = resolved.field.additional_attributes.get(style_key)
        else:
            rendered.cell_class = cell_css_class(group, self.config)

        if isinstance(resolved.field, GeneratorField):
            if resolved.field.template is not None:
                rendered.content = resolved.field.template(GeneratorContext(form=self))
            return rendered

        if not self.is_in_table_row:
            rendered.label = self._label(resolved)
            rendered.label_class = get_config_value('layout', 'label_class', None, config=self.config)
            rendered.input_wrapper_class = get_config_value('layout', 'input_wrapper_class', None, config=self.config)

        if resolved.descriptor is None or resolved.descriptor.type_info is None:
            return rendered

        binding = bind(resolved, self.model, self, input_id,
                       context=self.dispatch_context(),
                       cell_style_key=style_key,
                       grid_context=self.grid_context)
        rendered.binding = binding

        if binding.complex_context is not None:
            rendered.content = resolved.field.template(binding.complex_context)

        if self.enable_validation and self.last_validation is not None:
            rendered.messages = self.last_validation.messages_for(binding.reference)

        return rendered

    def render(self) -> RenderedForm:
        """
        Resolve, group and bind every field.

        Rows with an explicit key share one container. Fields without a row
        each get a container of their own. Table rows emit bare cells.

        Raises:
            FieldConfigurationError: If a field's type cannot be determined
        """
        resolved = self.resolve_fields()
        rows: List[RenderedRow] = []
        index = 0

        for group in group_by_row(resolved):
            if self.is_in_table_row:
                cells = []
                for item in group.fields:
                    cells.append(self._render_field(item, group, index))
                    index += 1
                rows.append(RenderedRow(group.key, None, cells))
            elif group.key == NO_ROW:
                for item in group.fields:
                    rows.append(RenderedRow(group.key, row_css_class(group, self.config),
                                            [self._render_field(item, group, index)]))
                    index += 1
            else:
                cells = []
                for item in group.fields:
                    cells.append(self._render_field(item, group, index))
                    index += 1
                rows.append(RenderedRow(group.key, row_css_class(group, self.config), cells))

        css_class = None
        if not self.is_in_table_row and self.enable_validation:
            css_class = get_config_value('form', 'validation_class', None, config=self.config)

        return RenderedForm(
            rows=rows,
            is_in_table_row=self.is_in_table_row,
            css_class=css_class,
            attributes=dict(self.additional_attributes),
            show_validation_summary=not self.is_in_table_row,
            validation_messages=self.last_validation.messages if self.last_validation is not None else [],
        )

    # Change tracking

    def mark_dirty(self, identifier: FieldIdentifier, previous: Any = None) -> None:
        """Record a changed field; repeated changes coalesce."""
        if identifier.field_name not in self._baseline:
            self._baseline[identifier.field_name] = previous
        self._changed[identifier] = None

    def notify_value_changed(self, field_name: str, new_value: Any, previous: Any = None) -> None:
        """Called by bindings after the model was written."""
        self.mark_dirty(FieldIdentifier.for_model(self.model, field_name), previous)
        logger.debug(f"Form {self.form_id}: '{field_name}' changed")

        if self.on_value_changed is not None:
            result = self.on_value_changed(FormValueChangedArgs(field_name, new_value, self.model))
            if inspect.isawaitable(result):
                if _loop_is_running():
                    # the edit is already committed; run the handler alongside
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
                else:
                    _wait_for(result)

    def on_input_key_up(self, key: str) -> None:
        """Enter inside a field submits a standalone form."""
        if key == ENTER_KEY and self.container is None:
            self.call_local_submit(True)

    # Submission

    def validate(self) -> ValidationContext:
        validator = self.validator if self.enable_validation else AlwaysValid()
        self.last_validation = ValidationContext.from_result(self.model, validator.validate(self.model))
        return self.last_validation

    def _build_change_set(self) -> Dict[str, Any]:
        # Values are re-read from the model, which is the source of truth
        descriptors = {r.name: r.descriptor for r in self.resolve_fields() if r.name}
        change_set: Dict[str, Any] = {}
        for identifier in self._changed:
            name = identifier.field_name
            if name in change_set:
                continue
            descriptor = descriptors.get(name) or describe(self.model, name)
            change_set[name] = descriptor.get_value(self.model)
        return change_set

    def _prepare_submit(self, user_interacted: bool) -> Optional[FormSubmitArgs]:
        """Validate, build the change set and clear the dirty state."""
        context = self.validate()

        if not context.is_valid:
            if self.container is not None:
                message = get_config_value('form', 'validation_error_message',
                                           'Please check the values. There is at least one validation error!',
                                           config=self.config)
                raise FormValidationError(message, context.messages, [self])
            logger.warning(f"{type(self.model).__name__}: Not valid! {context.messages}")
            return None

        change_set = self._build_change_set()
        changes = summarize_changes(self._baseline, change_set)
        self._changed.clear()
        self._baseline.clear()

        logger.info(f"Form {self.form_id} submitted {len(change_set)} changed field(s)")
        logger.debug(format_changes_for_log(changes))
        return FormSubmitArgs(self.model, change_set, context, user_interacted, changes)

    def _invoke_handler(self, args: FormSubmitArgs) -> Any:
        try:
            return self.on_valid_submit(args)
        except Exception:
            logger.error(f"Submit handler of form {self.form_id} failed", exc_info=True)
            raise

    def _run_pipeline(self, user_interacted: bool) -> bool:
        # Fail before the change set is consumed
        if inspect.iscoroutinefunction(self.on_valid_submit) and _loop_is_running():
            raise _blocking_wait_error()
        args = self._prepare_submit(user_interacted)
        if args is None:
            return False
        if self.on_valid_submit is not None:
            result = self._invoke_handler(args)
            if inspect.isawaitable(result):
                _wait_for(result)
        return True

    async def _run_pipeline_async(self, user_interacted: bool) -> bool:
        args = self._prepare_submit(user_interacted)
        if args is None:
            return False
        if self.on_valid_submit is not None:
            result = self._invoke_handler(args)
            if inspect.isawaitable(result):
                await result
        return True

    def submit(self, user_interacted: bool = False) -> bool:
        """
        Run the validate-then-submit pipeline and wait for the handler.

        A request arriving while a pipeline is running is queued and run
        after it completes.

        Returns:
            True if the model was valid and the change set was delivered;
            False if invalid (standalone form) or queued

        Raises:
            FormValidationError: If invalid while attached to a container
        """
        if self._busy:
            logger.debug(f"Form {self.form_id}: submit queued")
            self._pending.append(user_interacted)
            return False

        self._busy = True
        try:
            result = self._run_pipeline(user_interacted)
        except Exception:
            self._drop_pending()
            raise
        finally:
            self._busy = False

        while self._pending:
            self.submit(self._pending.popleft())
        return result

    async def submit_async(self, user_interacted: bool = False) -> bool:
        """Asynchronous submit(); awaits coroutine handlers in the running loop."""
        if self._busy:
            logger.debug(f"Form {self.form_id}: submit queued")
            self._pending.append(user_interacted)
            return False

        self._busy = True
        try:
            result = await self._run_pipeline_async(user_interacted)
        except Exception:
            self._drop_pending()
            raise
        finally:
            self._busy = False

        while self._pending:
            await self.submit_async(self._pending.popleft())
        return result

    def _drop_pending(self) -> None:
        if self._pending:
            logger.warning(f"Form {self.form_id}: dropping {len(self._pending)} queued submit(s) after failure")
            self._pending.clear()

    def call_local_submit(self, user_interacted: bool = False) -> bool:
        return self.submit(user_interacted)

    def handle_container_submit(self, user_interacted: bool) -> bool:
        """Entry point used by a container broadcast."""
        return self.submit(user_interacted)

    def request_submit(self, user_interacted: bool = True) -> Any:
        """Submit through the container when attached, else locally."""
        if self.container is not None:
            return self.container.notify_submit(user_interacted)
        return self.call_local_submit(user_interacted)

    # Lifecycle

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.container is not None:
            self.container.unregister_form(self)
        logger.debug(f"Form {self.form_id} closed")

    def __enter__(self) -> "Form":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
