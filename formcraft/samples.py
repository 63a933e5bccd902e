"""Predefined sample form for bulk loading."""

from formcraft.model import FormState

SAMPLE_FORM = {
    "nodes": {
        "root": {
            "id": "root",
            "type": "container",
            "label": "Contact Us",
            "children": ["intro", "name-row", "email", "topic", "message",
                         "subscribe", "rule", "submit"],
        },
        "intro": {
            "id": "intro",
            "type": "text",
            "label": "Tell us how we can help and we will get back to you.",
        },
        "name-row": {
            "id": "name-row",
            "type": "row",
            "children": ["name-col-1", "name-col-2"],
        },
        "name-col-1": {"id": "name-col-1", "type": "col", "children": ["first-name"]},
        "name-col-2": {"id": "name-col-2", "type": "col", "children": ["last-name"]},
        "first-name": {
            "id": "first-name",
            "type": "input",
            "label": "First name",
            "placeholder": "Jane",
            "required": True,
        },
        "last-name": {
            "id": "last-name",
            "type": "input",
            "label": "Last name",
            "placeholder": "Doe",
            "required": True,
        },
        "email": {
            "id": "email",
            "type": "input",
            "label": "Email",
            "placeholder": "jane@example.com",
            "required": True,
        },
        "topic": {
            "id": "topic",
            "type": "select",
            "label": "Topic",
            "placeholder": "Select...",
            "options": [
                {"label": "Sales", "value": "sales"},
                {"label": "Support", "value": "support"},
                {"label": "Other", "value": "other"},
            ],
        },
        "message": {
            "id": "message",
            "type": "textarea",
            "label": "Message",
            "placeholder": "Your message",
        },
        "subscribe": {
            "id": "subscribe",
            "type": "checkbox",
            "label": "Subscribe to the newsletter",
            "defaultValue": False,
        },
        "rule": {"id": "rule", "type": "divider"},
        "submit": {"id": "submit", "type": "button", "label": "Send"},
    },
    "rootId": "root",
    "selectedNodeId": None,
}


def sample_form() -> FormState:
    """A fresh copy of the sample contact form."""
    return FormState.from_dict(SAMPLE_FORM)
