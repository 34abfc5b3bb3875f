"""
Streamlit renderer for modelform forms.

Draws the output of Form.render() with Streamlit widgets. Widget values live
in st.session_state under keys derived from the field name, so they survive
reruns; every change is written back to the model through the field binding,
which lets the form track it.
"""

import enum
import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import streamlit as st

from .binding import Binding
from .config_loader import get_config_value
from .exceptions import FormValidationError
from .form import Form, RenderedField
from .widgets import WidgetKind

logger = logging.getLogger(__name__)


class StreamlitRenderer:
    """Maps rendered fields onto Streamlit widgets."""

    @staticmethod
    def widget_key(key_prefix: str, rendered: RenderedField) -> str:
        name = rendered.field.name or rendered.input_id
        return f"{key_prefix}_{name}"

    @staticmethod
    def _on_change(binding: Binding, widget_key: str, convert: Callable[[Any], Any]) -> None:
        """Write the widget's session value through the binding."""
        raw_value = st.session_state.get(widget_key)
        try:
            value = convert(raw_value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid value {raw_value!r} for '{binding.name}': {e}")
            return
        binding.set(value)

    @staticmethod
    def _base_kwargs(rendered: RenderedField, widget_key: str,
                     convert: Callable[[Any], Any] = lambda v: v) -> Dict[str, Any]:
        binding = rendered.binding
        kwargs: Dict[str, Any] = {
            'label': rendered.label or rendered.field.name or "",
            'key': widget_key,
            'disabled': binding.widget.disabled or binding.is_read_only,
        }
        if not binding.is_read_only:
            kwargs['on_change'] = StreamlitRenderer._on_change
            kwargs['args'] = (binding, widget_key, convert)
        return kwargs

    @staticmethod
    def _seed(widget_key: str, value: Any) -> None:
        # Initial value goes to session state; the widget reads it from there
        if widget_key not in st.session_state:
            st.session_state[widget_key] = value

    @staticmethod
    def render_form(form: Form, key_prefix: str = "mform") -> None:
        """
        Render every row of a form.

        Rows with several fields are laid out with st.columns; all other fields
        take the full width.

        Args:
            form: Form to draw
            key_prefix: Prefix for session state keys, unique per form on a page
        """
        rendered_form = form.render()

        for row in rendered_form.rows:
            if len(row.fields) > 1:
                columns = st.columns(len(row.fields))
                for column, rendered in zip(columns, row.fields):
                    with column:
                        StreamlitRenderer.render_field(rendered, key_prefix)
            else:
                for rendered in row.fields:
                    StreamlitRenderer.render_field(rendered, key_prefix)

    @staticmethod
    def render_field(rendered: RenderedField, key_prefix: str = "mform") -> Any:
        """
        Render one field.

        Returns:
            The widget's current value, or None for template-only fields
        """
        if rendered.content is not None:
            st.write(rendered.content)
        if rendered.binding is None or rendered.binding.widget is None:
            return None

        widget_key = StreamlitRenderer.widget_key(key_prefix, rendered)
        kind = rendered.kind

        try:
            renderer = _RENDERERS.get(kind, StreamlitRenderer._render_fallback)
            value = renderer(rendered, widget_key)
        except Exception as e:
            logger.error(f"Error rendering field {rendered.field.name}: {e}")
            st.error(f"Error rendering field {rendered.field.name}: {str(e)}")
            return None

        for message in rendered.messages:
            st.error(message)
        return value

    @staticmethod
    def _render_number_input(rendered: RenderedField, widget_key: str) -> Any:
        options = rendered.binding.widget.options
        number_type = options.get('number_type', float)
        value = rendered.binding.value

        if issubclass(number_type, int):
            fmt, coerce = "%d", int
        else:
            fmt, coerce = "%.2f", float

        def convert(v: Any) -> Any:
            if v is None:
                return None
            return Decimal(str(v)) if number_type is Decimal else number_type(v)

        StreamlitRenderer._seed(widget_key, coerce(value) if value is not None else None)
        kwargs = StreamlitRenderer._base_kwargs(rendered, widget_key, convert)
        kwargs['step'] = coerce(options.get('step', 1))
        kwargs['format'] = fmt
        return st.number_input(**kwargs)

    @staticmethod
    def _render_date_input(rendered: RenderedField, widget_key: str) -> Any:
        value = rendered.binding.value
        underlying = rendered.field.descriptor.type_info.underlying_type

        def convert(v: Any) -> Any:
            if v is not None and underlying is datetime:
                return datetime.combine(v, time.min)
            return v

        StreamlitRenderer._seed(widget_key, value.date() if isinstance(value, datetime) else value)
        return st.date_input(**StreamlitRenderer._base_kwargs(rendered, widget_key, convert))

    @staticmethod
    def _render_time_input(rendered: RenderedField, widget_key: str) -> Any:
        binding = rendered.binding
        value = binding.value

        def convert(v: Any) -> Any:
            current = binding.get()
            if v is not None and isinstance(current, datetime):
                return datetime.combine(current.date(), v)
            return v

        StreamlitRenderer._seed(widget_key, value.time() if isinstance(value, datetime) else value)
        return st.time_input(**StreamlitRenderer._base_kwargs(rendered, widget_key, convert))

    @staticmethod
    def _render_datetime_input(rendered: RenderedField, widget_key: str) -> Any:
        """Streamlit has no datetime input; use a date and a time input side by side."""
        binding = rendered.binding
        current_dt = binding.value if isinstance(binding.value, datetime) else datetime.now()
        date_key, time_key = f"{widget_key}_date", f"{widget_key}_time"

        StreamlitRenderer._seed(date_key, current_dt.date())
        StreamlitRenderer._seed(time_key, current_dt.time())

        def combine(_: Any) -> datetime:
            return datetime.combine(st.session_state[date_key], st.session_state[time_key])

        label = rendered.label or rendered.field.name
        col1, col2 = st.columns(2)
        with col1:
            kwargs = StreamlitRenderer._base_kwargs(rendered, date_key, combine)
            kwargs['label'] = f"{label} (Date)"
            date_part = st.date_input(**kwargs)
        with col2:
            kwargs = StreamlitRenderer._base_kwargs(rendered, time_key, combine)
            kwargs['label'] = f"{label} (Time)"
            time_part = st.time_input(**kwargs)

        return datetime.combine(date_part, time_part)

    @staticmethod
    def _render_checkbox(rendered: RenderedField, widget_key: str) -> bool:
        StreamlitRenderer._seed(widget_key, bool(rendered.binding.value))
        return st.checkbox(**StreamlitRenderer._base_kwargs(rendered, widget_key, bool))

    @staticmethod
    def _render_selectbox(rendered: RenderedField, widget_key: str) -> Any:
        options = rendered.binding.widget.options
        choices = list(options.get('choices', []))
        null_label = options.get('null_description') or "-- Select --"

        if options.get('nullable'):
            choices = [None] + choices

        def format_choice(choice: Any) -> str:
            if choice is None:
                return null_label
            if isinstance(choice, enum.Enum):
                return str(choice.name)
            return str(choice)

        value = rendered.binding.value
        StreamlitRenderer._seed(widget_key, value if value in choices else choices[0] if choices else None)
        kwargs = StreamlitRenderer._base_kwargs(rendered, widget_key)
        kwargs['options'] = choices
        kwargs['format_func'] = format_choice
        return st.selectbox(**kwargs)

    @staticmethod
    def _render_guid_input(rendered: RenderedField, widget_key: str) -> str:
        def convert(v: Any) -> Optional[uuid.UUID]:
            return uuid.UUID(v) if v else None

        StreamlitRenderer._seed(widget_key, str(rendered.binding.value or ""))
        return st.text_input(**StreamlitRenderer._base_kwargs(rendered, widget_key, convert))

    @staticmethod
    def _render_text_input(rendered: RenderedField, widget_key: str) -> str:
        StreamlitRenderer._seed(widget_key, rendered.binding.value or "")
        kwargs = StreamlitRenderer._base_kwargs(rendered, widget_key)
        if rendered.binding.widget.input_type == "password":
            kwargs['type'] = "password"
        return st.text_input(**kwargs)

    @staticmethod
    def _render_text_area(rendered: RenderedField, widget_key: str) -> str:
        StreamlitRenderer._seed(widget_key, rendered.binding.value or "")
        kwargs = StreamlitRenderer._base_kwargs(rendered, widget_key)
        kwargs['height'] = 100
        return st.text_area(**kwargs)

    @staticmethod
    def _render_fallback(rendered: RenderedField, widget_key: str) -> str:
        value = rendered.binding.value
        return st.text_input(
            rendered.label or rendered.field.name or "",
            value="" if value is None else str(value),
            key=widget_key,
            disabled=True,
        )

    @staticmethod
    def render_submit_button(form: Form, label: str = "Submit Changes", key: Optional[str] = None) -> bool:
        """
        Draw a submit button and run the form's submit when it is pressed.

        Returns:
            True if the button was pressed and the submit succeeded
        """
        if not st.button(label, key=key, type="primary"):
            return False

        try:
            submitted = form.request_submit(True)
        except FormValidationError as e:
            st.error(e.message)
            for message in e.messages:
                st.error(f"  • {message}")
            return False

        if submitted is False:
            st.error(get_config_value('form', 'validation_error_message',
                                      'Please check the values. There is at least one validation error!',
                                      config=form.config))
            if form.last_validation is not None:
                for message in form.last_validation.messages:
                    st.error(f"  • {message}")
            return False

        st.success("Changes submitted successfully!")
        return True


_RENDERERS = {
    WidgetKind.NUMBER_INPUT: StreamlitRenderer._render_number_input,
    WidgetKind.DATE_INPUT: StreamlitRenderer._render_date_input,
    WidgetKind.TIME_INPUT: StreamlitRenderer._render_time_input,
    WidgetKind.DATETIME_INPUT: StreamlitRenderer._render_datetime_input,
    WidgetKind.CHECKBOX: StreamlitRenderer._render_checkbox,
    WidgetKind.SELECT: StreamlitRenderer._render_selectbox,
    WidgetKind.GUID_INPUT: StreamlitRenderer._render_guid_input,
    WidgetKind.TEXT_INPUT: StreamlitRenderer._render_text_input,
    WidgetKind.TEXT_AREA: StreamlitRenderer._render_text_area,
    WidgetKind.FALLBACK: StreamlitRenderer._render_fallback,
}

render_form = StreamlitRenderer.render_form
render_submit_button = StreamlitRenderer.render_submit_button
