"""Progress overlay markup and the client script that drives the staged sync.

The script payload is ``{url, stage, targetRevId, purgeUrl}``:

- phase 1 (``stage`` is not ``"2"``): bar to 40% after ``start_delay_ms``,
  then navigate to ``url`` + ``syncstage=2&revsync=<targetRevId>`` after
  ``redirect_delay_ms``;
- phase 2: bar to 85% after ``start_delay_ms``, "Sync Complete" after
  ``complete_delay_ms``, then one ``POST purgeUrl`` after
  ``purge_delay_ms`` and navigation to ``url`` whether the purge succeeded
  or not.
"""

from __future__ import annotations

import html
import json

from ..config_schema import WorkflowConfig

SUCCESS_COLOR = "#00af89"


def append_query(url: str, query: str) -> str:
    """Append *query* to *url* with ``?`` or ``&`` as appropriate."""
    return url + ("&" if "?" in url else "?") + query


def purge_url(url: str) -> str:
    """The document URL with ``action=purge`` appended."""
    return append_query(url, "action=purge")


def stage_two_url(url: str, target_revision_id: int | None) -> str:
    """Where phase 1 redirects to (the script builds the same URL)."""
    return append_query(
        url, f"syncstage=2&revsync={target_revision_id or 0}"
    )


def build_payload(
    url: str, stage: str | None, target_revision_id: int | None
) -> dict:
    return {
        "url": url,
        "stage": stage,
        "targetRevId": target_revision_id or 0,
        "purgeUrl": purge_url(url),
    }


def _script_json(payload: dict) -> str:
    # Keep "</script>" and friends out of the inline script
    return (
        json.dumps(payload)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


_OVERLAY_TEMPLATE = """
<div id="sync-overlay" style="position:fixed; top:0; left:0; width:100vw; height:100vh; background:rgba(0,0,0,0.75); backdrop-filter:blur(5px); z-index:2147483647; display:flex; align-items:center; justify-content:center; font-family:sans-serif;">
  <div style="background:var(--background-color-base, #fff); color:var(--color-base, #202122); padding:40px; border-radius:16px; width:440px; text-align:center; box-shadow:0 20px 60px rgba(0,0,0,0.5); border:1px solid var(--border-color-base, #a2a9b1);">
    <div style="display:inline-block; margin-bottom:20px; padding:6px 14px; background:var(--background-color-primary-subtle, #eaf3ff); color:var(--color-primary, #36c); border-radius:20px; font-size:10px; font-weight:bold; letter-spacing:1.5px; text-transform:uppercase;">System Sync</div>
    <div id="sync-headline" style="font-size:24px; margin-bottom:8px; font-weight:700;">Preparing Sync</div>
    <div style="font-size:14px; color:var(--color-base--subtle, #72777d); margin-bottom:30px;">
      Synchronizing Revision <span style="font-family:monospace; font-weight:bold; color:var(--color-primary, #36c);">#{target}</span>
    </div>
    <div style="background:var(--background-color-neutral, #eaecf0); height:8px; border-radius:4px; margin-bottom:15px; overflow:hidden;">
      <div id="sync-bar" style="background:var(--color-primary, #36c); width:0%; height:100%; transition:width 0.4s ease, background 0.3s ease;"></div>
    </div>
    <div id="sync-status" style="font-size:12px; font-style:italic; color:var(--color-base--subtle, #a2a9b1);">Locating revision data...</div>
  </div>
</div>
"""


def render_overlay_html(target_revision_id: int | None) -> str:
    """Overlay markup with the progress bar at 0%."""
    return _OVERLAY_TEMPLATE.replace(
        "{target}", html.escape(str(target_revision_id or 0))
    )


_SCRIPT_TEMPLATE = """
(function(){
  var d = __PAYLOAD__;
  var bar = document.getElementById('sync-bar'),
      status = document.getElementById('sync-status'),
      headline = document.getElementById('sync-headline');
  setTimeout(function(){
    if (d.stage !== '2') {
      bar.style.width = '40%';
      setTimeout(function(){
        window.location.href = d.url + (d.url.indexOf('?') === -1 ? '?' : '&') + 'syncstage=2&revsync=' + d.targetRevId;
      }, __REDIRECT_DELAY__);
    } else {
      headline.textContent = 'Aligning Database Truth';
      status.textContent = 'Updating semantic tables...';
      bar.style.width = '85%';
      setTimeout(function(){
        bar.style.width = '100%';
        bar.style.background = '__SUCCESS_COLOR__';
        headline.textContent = 'Sync Complete';
        status.textContent = 'Finalizing and purging cache...';
        setTimeout(function(){
          fetch(d.purgeUrl, { method: 'POST' }).then(function(){
            window.location.href = d.url;
          }).catch(function(){
            window.location.href = d.url;
          });
        }, __PURGE_DELAY__);
      }, __COMPLETE_DELAY__);
    }
  }, __START_DELAY__);
})();
"""


def render_overlay_script(
    url: str,
    stage: str | None,
    target_revision_id: int | None,
    timings: WorkflowConfig | None = None,
) -> str:
    """Inline script that advances the overlay and drives the redirects.

    Both phases wait ``start_delay_ms`` first so the bar's CSS transition
    can initialise.
    """
    t = timings or WorkflowConfig()
    replacements = {
        "__PAYLOAD__": _script_json(
            build_payload(url, stage, target_revision_id)
        ),
        "__REDIRECT_DELAY__": str(t.redirect_delay_ms),
        "__COMPLETE_DELAY__": str(t.complete_delay_ms),
        "__PURGE_DELAY__": str(t.purge_delay_ms),
        "__START_DELAY__": str(t.start_delay_ms),
        "__SUCCESS_COLOR__": SUCCESS_COLOR,
    }
    script = _SCRIPT_TEMPLATE
    for marker, value in replacements.items():
        script = script.replace(marker, value)
    return script
