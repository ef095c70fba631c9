"""HTML pages for the subscription form and result messages."""

from html import escape

from subscribe.strings import UIStrings

STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           line-height: 1.6; color: #1e1e1e; max-width: 640px; margin: 0 auto; padding: 24px; }
    header { border-bottom: 1px solid #ddd; margin-bottom: 32px; }
    .card { background: #f6f6f6; border-radius: 8px; padding: 24px 32px; }
    label { display: block; font-weight: 500; margin-bottom: 4px; }
    input[type=email] { width: 100%; padding: 8px; font-size: 1rem; box-sizing: border-box; }
    .buttons { margin-top: 24px; display: flex; gap: 12px; }
    button, .button { background: #000091; color: #fff; border: 0; padding: 10px 20px;
                      font-size: 1rem; cursor: pointer; text-decoration: none; }
    button.secondary, .button.secondary { background: #fff; color: #000091;
                                          border: 1px solid #000091; }
    /* Honeypot field - hidden from users but visible to bots */
    .visually-hidden { position: absolute; left: -9999px; height: 1px; width: 1px;
                       overflow: hidden; }
    .alert { border-left: 5px solid; padding: 16px; margin-bottom: 16px; }
    .alert h3 { margin-top: 0; }
    .success { border-color: #18753c; background: #b8fec9; }
    .error { border-color: #ce0500; background: #ffe9e9; }
    .warning { border-color: #b34000; background: #ffe9e6; }
    .info { border-color: #0063cb; background: #e8edff; }
"""


def _title(strings: UIStrings, list_name: str) -> str:
    title = strings["page"]["title"]
    if list_name:
        title = f"{title} - {list_name}"
    return escape(title)


def _layout(lang: str, title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="{escape(lang, quote=True)}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{STYLE}</style>
</head>
<body>
  <header><p><strong>{title}</strong></p></header>
  <main role="main" id="content">
{body}
  </main>
</body>
</html>
"""


def render_index(
    strings: UIStrings,
    lang: str,
    list_name: str,
    subscribe_path: str,
    csrf_token: str,
) -> str:
    """The subscription form. The honeypot ``website`` field stays empty for humans."""
    page = strings["page"]
    form = strings["form"]
    heading = escape(list_name or page["heading"])

    body = f"""    <div class="card">
      <h2>{heading}</h2>
      <p>{escape(page["subheading"])}</p>
      <form method="post" action="{escape(subscribe_path, quote=True)}">
        <label for="email">{escape(form["email_label"])}</label>
        <input type="email" id="email" name="email"
               placeholder="{escape(form["email_placeholder"], quote=True)}" required>
        <input type="hidden" name="csrf_token" value="{escape(csrf_token, quote=True)}">
        <div class="visually-hidden" aria-hidden="true">
          <label for="website">{escape(form["website_label"])}</label>
          <input type="text" id="website" name="website" tabindex="-1" autocomplete="off">
        </div>
        <div class="buttons">
          <button type="submit" name="action" value="subscribe">{escape(form["subscribe_button"])}</button>
          <button type="submit" name="action" value="unsubscribe" class="secondary">{escape(form["unsubscribe_button"])}</button>
        </div>
      </form>
    </div>"""
    return _layout(lang, _title(strings, list_name), body)


def render_message(
    strings: UIStrings,
    lang: str,
    list_name: str,
    message_type: str,
    message_key: str,
    home_path: str,
    show_back_link: bool = True,
    **values: str,
) -> str:
    """A result page for ``message_key`` with its ``<key>_message`` body.

    ``values`` are escaped before being placed in the message template,
    which may itself contain markup.

    Args:
        message_type: One of success, info, warning, error
    """
    messages = strings["messages"]
    heading = escape(messages[message_key])
    message = messages[f"{message_key}_message"].format(
        **{name: escape(value) for name, value in values.items()}
    )

    back_link = ""
    if show_back_link:
        back_link = (
            f'\n    <p><a class="button secondary" href="{escape(home_path, quote=True)}">'
            f'{escape(messages["back_to_subscription"])}</a></p>'
        )

    body = f"""    <div id="result">
      <div class="alert {escape(message_type, quote=True)}">
        <h3>{heading}</h3>
        <p>{message}</p>
      </div>{back_link}
    </div>"""
    return _layout(lang, _title(strings, list_name), body)
