"""
br_cli/utils/js_utils.py

JavaScript snippet generators evaluated in the page via Runtime.evaluate.
Every argument is embedded with json.dumps.
"""

import json

from br_cli.data_models.locator import Locator, LocatorKind


def _locate_elements_js(locator: Locator) -> str:
    """Generate JavaScript statements that bind `elements` to the live matches of a locator.

    Args:
        locator: CSS or XPath locator.

    Returns:
        JavaScript statements (not an expression).
    """
    if locator.kind == LocatorKind.XPATH:
        return f"""
    const selector = {json.dumps(locator.expression)};
    const elements = [];
    const snapshot = document.evaluate(selector, document, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
    for (let i = 0; i < snapshot.snapshotLength; i++) {{
        elements.push(snapshot.snapshotItem(i));
    }}"""
    return f"""
    const selector = {json.dumps(locator.expression)};
    const elements = Array.from(document.querySelectorAll(selector));"""


def generate_count_js(locator: Locator) -> str:
    """Generate JavaScript that returns the number of live elements matching a locator.

    Invalid selector syntax throws, which surfaces as an evaluation exception.
    """
    return f"""
(function() {{{_locate_elements_js(locator)}
    return elements.length;
}})()
"""


def generate_click_js(locator: Locator) -> str:
    """Generate JavaScript to find an element, scroll it into view and get its click coordinates.

    Args:
        locator: Locator for the element.

    Returns:
        JavaScript code that returns element coordinates or error info.
    """
    return f"""
(function() {{{_locate_elements_js(locator)}
    const element = elements[0];

    if (!element) {{
        return {{ error: 'Element not found: ' + selector }};
    }}
    if (element.nodeType !== Node.ELEMENT_NODE) {{
        return {{ error: 'Node is not an element: ' + selector }};
    }}

    const style = window.getComputedStyle(element);
    if (style.display === 'none' || style.visibility === 'hidden') {{
        return {{ error: 'Element is not visible: ' + selector }};
    }}

    element.scrollIntoView({{ behavior: 'auto', block: 'center', inline: 'center' }});

    const rect = element.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) {{
        return {{ error: 'Element has no dimensions: ' + selector }};
    }}

    return {{
        x: rect.left + rect.width / 2,
        y: rect.top + rect.height / 2,
        width: rect.width,
        height: rect.height
    }};
}})()
"""


def generate_focus_input_js(locator: Locator, clear: bool) -> str:
    """Generate JavaScript to find and focus an editable element.

    Args:
        locator: Locator for the element.
        clear: Whether to clear existing text (and fire an input event).

    Returns:
        JavaScript code that focuses the element or returns error.
    """
    return f"""
(function() {{{_locate_elements_js(locator)}
    const element = elements[0];

    if (!element) {{
        return {{ error: 'Element not found: ' + selector }};
    }}

    const tagName = (element.tagName || '').toLowerCase();
    const isInput = tagName === 'input' || tagName === 'textarea' || tagName === 'select';
    const isContentEditable = element.isContentEditable === true;

    if (!isInput && !isContentEditable) {{
        return {{ error: 'Element is not an <input>, <textarea>, <select> or [contenteditable] element: ' + selector }};
    }}
    if (element.disabled) {{
        return {{ error: 'Element is disabled: ' + selector }};
    }}

    element.scrollIntoView({{ behavior: 'auto', block: 'center', inline: 'center' }});
    element.focus();

    if ({json.dumps(clear)}) {{
        if (isInput) {{
            element.value = '';
        }} else {{
            element.textContent = '';
        }}
        element.dispatchEvent(new Event('input', {{ bubbles: true }}));
    }}

    return {{ success: true }};
}})()
"""


def generate_dispatch_change_js(locator: Locator) -> str:
    """Generate JavaScript that fires a change event on the first match of a locator."""
    return f"""
(function() {{{_locate_elements_js(locator)}
    const element = elements[0];
    if (element) {{
        element.dispatchEvent(new Event('change', {{ bubbles: true }}));
    }}
    return {{ success: true }};
}})()
"""


def generate_scroll_into_view_js(locator: Locator) -> str:
    """Generate JavaScript to scroll the first match of a locator into view."""
    return f"""
(function() {{{_locate_elements_js(locator)}
    const element = elements[0];
    if (!element) {{
        return {{ error: 'Element not found: ' + selector }};
    }}
    const target = element.nodeType === Node.ELEMENT_NODE ? element : element.parentElement;
    if (target) {{
        target.scrollIntoView();
    }}
    return {{ success: true }};
}})()
"""


def generate_scroll_to_percentage_js(percentage: float) -> str:
    """Generate JavaScript to scroll the window to a percentage of the page height.

    Args:
        percentage: Position in [0, 100].

    Returns:
        JavaScript code that scrolls the window.
    """
    return f"""
(function() {{
    const pct = {json.dumps(percentage)};
    const root = document.scrollingElement || document.documentElement || document.body;
    const height = root ? root.scrollHeight : 0;
    window.scrollTo(0, height * (pct / 100));
    return {{ success: true }};
}})()
"""


def generate_scroll_by_viewport_js(direction: int) -> str:
    """Generate JavaScript to scroll the window by one viewport height.

    Args:
        direction: 1 to scroll down, -1 to scroll up.
    """
    return f"window.scrollBy(0, {json.dumps(direction)} * window.innerHeight)"


def generate_get_html_js() -> str:
    """Generate JavaScript that returns the serialized document, doctype included."""
    return """
(function() {
    const doctype = document.doctype ? new XMLSerializer().serializeToString(document.doctype) : '';
    const html = document.documentElement ? document.documentElement.outerHTML : '';
    return doctype + html;
})()
"""
