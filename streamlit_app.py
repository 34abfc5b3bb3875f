"""
Demo Streamlit application for modelform.

Shows a form over a pydantic model and a schema-driven form over a dictionary,
both submitted together through a FormContainer.

Run with:
    streamlit run streamlit_app.py
"""

import logging
from datetime import date
from enum import Enum
from typing import Annotated, Optional

import streamlit as st
from pydantic import BaseModel, Field

from modelform import Display, Form, FormContainer, ReadOnly, Row, TextArea
from modelform.config_loader import configure_logging, get_config_value
from modelform.diff_utils import get_change_summary
from modelform.schema_fields import fields_from_schema, model_from_schema
from modelform.streamlit_renderer import render_form, render_submit_button
from modelform.validation import PydanticValidator

configure_logging()
logger = logging.getLogger(__name__)


class InvoiceStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"


class Invoice(BaseModel):
    invoice_number: Annotated[str, ReadOnly(), Row(1)]
    invoice_date: Annotated[date, Row(1)]
    supplier_name: Annotated[str, Display("Supplier Name"), Row(2)] = Field(min_length=1)
    total_amount: Annotated[float, Display("Total Amount"), Row(2)] = Field(ge=0)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: Annotated[Optional[str], TextArea()] = None


SHIPPING_SCHEMA = {
    'fields': {
        'carrier': {'type': 'string', 'label': 'Carrier', 'required': True, 'min_length': 1, 'row': 1},
        'tracking_id': {'type': 'uuid', 'label': 'Tracking ID', 'row': 1},
        'express': {'type': 'boolean', 'label': 'Express', 'required': True},
        'priority': {'type': 'enum', 'choices': ['low', 'normal', 'high'], 'label': 'Priority'},
    }
}


def _log_submit(args) -> None:
    summary = get_change_summary(args.changes)
    logger.info(f"Submitted {type(args.model).__name__}: {summary['total']} change(s)")
    st.session_state.setdefault('submissions', []).append(args.change_set)


def _get_state():
    """Models, forms and the container live in session state across reruns."""
    if 'forms' not in st.session_state:
        invoice = Invoice(
            invoice_number="INV-0001",
            invoice_date=date.today(),
            supplier_name="Acme Corp",
            total_amount=125.0,
        )
        shipping = {'carrier': 'DHL', 'tracking_id': None, 'express': False, 'priority': None}
        container = FormContainer()
        st.session_state.forms = (
            Form(invoice, container=container, on_valid_submit=_log_submit),
            Form(
                shipping,
                fields_from_schema(SHIPPING_SCHEMA),
                container=container,
                validator=PydanticValidator(bag_model=model_from_schema(SHIPPING_SCHEMA, "Shipping")),
                on_valid_submit=_log_submit,
            ),
        )
    return st.session_state.forms


def main():
    """Main application entry point."""
    st.set_page_config(page_title="modelform demo", layout="wide")
    st.title("modelform demo")

    invoice_form, shipping_form = _get_state()

    st.subheader("Invoice")
    render_form(invoice_form, key_prefix="invoice")

    st.subheader("Shipping")
    render_form(shipping_form, key_prefix="shipping")

    if invoice_form.has_unsaved_changes or shipping_form.has_unsaved_changes:
        st.info("You have unsaved changes")

    render_submit_button(invoice_form, key="submit_all")

    if get_config_value('logging', 'level', 'INFO') == 'DEBUG':
        st.json(invoice_form.model.model_dump(mode='json'))
        st.json({k: str(v) for k, v in shipping_form.model.items()})

    for change_set in st.session_state.get('submissions', []):
        st.write(change_set)


if __name__ == "__main__":
    main()
