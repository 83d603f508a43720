"""JavaScript snippets run inside the PDF.js viewer page.

Every snippet is a self-contained expression suitable for
``QWebEnginePage.runJavaScript``. Arguments are embedded with ``json.dumps``
so selected text can never break out of its string literal. Snippets that
touch PDF.js internals probe each field before use and return a neutral
value when it is missing.
"""

from __future__ import annotations

import json

BRIDGE_OBJECT_NAME = "varHighlighterBridge"

# Shared lookups: the application, its viewer, find controller and scroller.
_PRELUDE = """
  const app = window.PDFViewerApplication || null;
  const viewer = app ? (app.pdfViewer || null) : null;
  const fc = app ? (app.findController || (viewer && viewer.findController) || null) : null;
  const container = document.getElementById("viewerContainer") || (viewer && viewer.container) || null;
"""


def _args(*values: object) -> str:
    return ", ".join(json.dumps(value, ensure_ascii=False) for value in values)


BOOTSTRAP_SCRIPT = """
(() => {
  if (window.__varhlBootstrapped) return;
  window.__varhlBootstrapped = true;
  const connect = (attempts) => {
    if (typeof QWebChannel === "undefined" || !window.qt || !qt.webChannelTransport) {
      if (attempts > 0) setTimeout(() => connect(attempts - 1), 100);
      return;
    }
    new QWebChannel(qt.webChannelTransport, (channel) => {
      window.__varhlBridge = channel.objects.%(bridge)s;
    });
  };
  connect(50);
  document.addEventListener("mouseup", (event) => {
    const target = event.target;
    if (!target || !target.closest || !target.closest(".textLayer")) return;
    // The selection is only final after the mouseup has been handled.
    setTimeout(() => {
      const sel = window.getSelection ? window.getSelection() : null;
      const text = sel && !sel.isCollapsed ? sel.toString() : "";
      const bridge = window.__varhlBridge;
      if (!text || !bridge) return;
      bridge.onSelectionPopup({windowSelection: text});
    }, 0);
  }, true);
})();
""" % {"bridge": BRIDGE_OBJECT_NAME}


PAGE_COUNT_SCRIPT = """(() => {%s
  const candidates = [
    app && app.pagesCount,
    viewer && viewer.pagesCount,
    app && app.pdfDocument && app.pdfDocument.numPages,
  ];
  for (const value of candidates) {
    if (typeof value === "number" && value > 0) return value;
  }
  return 0;
})()""" % _PRELUDE


MATCH_SET_SCRIPT = """(() => {%s
  if (!fc) return {ok: false, reason: "no-find-controller"};
  const pick = (names) => {
    for (const name of names) {
      try {
        const value = fc[name];
        if (value !== undefined && value !== null) return value;
      } catch (e) {}
    }
    return undefined;
  };
  const raw = pick(["pageMatches", "_pageMatches"]);
  let pages = null;
  if (Array.isArray(raw)) {
    pages = [];
    for (let i = 0; i < raw.length; i++) {
      const matches = raw[i];
      pages.push(Array.isArray(matches) ? matches.slice() : null);
    }
  }
  const pendingRaw = pick(["_pendingFindMatches", "pendingFindMatches"]);
  let pending = null;
  if (pendingRaw instanceof Set || pendingRaw instanceof Map) pending = pendingRaw.size;
  else if (Array.isArray(pendingRaw)) pending = pendingRaw.length;
  else if (typeof pendingRaw === "number") pending = pendingRaw;
  else if (pendingRaw && typeof pendingRaw === "object") pending = Object.keys(pendingRaw).length;
  const state = pick(["state", "_state"]);
  let query = state && typeof state === "object" ? state.query : undefined;
  if (typeof query !== "string") query = pick(["_rawQuery"]);
  if (typeof query !== "string") query = null;
  const searching = fc._dirtyMatch === true || !!fc._findTimeout;
  return {ok: pages !== null, pages, pending, query, searching};
})()""" % _PRELUDE


RESET_SEARCH_SCRIPT = """(() => {%s
  try {
    if (fc && typeof fc.reset === "function") {
      fc.reset();
      return true;
    }
    if (app && app.eventBus && typeof app.eventBus.dispatch === "function") {
      app.eventBus.dispatch("findbarclose", {source: window});
      return true;
    }
  } catch (e) {}
  return false;
})()""" % _PRELUDE


RESTORE_SCROLL_INTO_VIEW_SCRIPT = """(() => {
  const stash = window.__varhlScrollStash;
  window.__varhlScrollStash = null;
  if (!stash) return false;
  for (const entry of stash) {
    try {
      if (entry.own) entry.obj[entry.name] = entry.fn;
      else delete entry.obj[entry.name];
    } catch (e) {}
  }
  return true;
})()"""


SUPPRESS_SCROLL_INTO_VIEW_SCRIPT = """(() => {%s
  if (window.__varhlScrollStash) return true;
  const stash = [];
  const noop = function () {};
  const targets = [
    [fc, "scrollMatchIntoView"],
    [fc, "_scrollMatchIntoView"],
    [viewer, "scrollPageIntoView"],
  ];
  for (const [obj, name] of targets) {
    if (!obj || typeof obj[name] !== "function") continue;
    const own = Object.prototype.hasOwnProperty.call(obj, name);
    stash.push({obj, name, own, fn: obj[name]});
    try { obj[name] = noop; } catch (e) {}
  }
  window.__varhlScrollStash = stash;
  return stash.length > 0;
})()""" % _PRELUDE


READ_SCROLL_SCRIPT = """(() => {%s
  if (!container) return null;
  const page = app && typeof app.page === "number" ? app.page : null;
  return {top: container.scrollTop, left: container.scrollLeft, page};
})()""" % _PRELUDE


def dispatch_search_script(
    query: str, case_sensitive: bool, highlight_all: bool, phrase_search: bool
) -> str:
    request = {
        "query": query,
        "caseSensitive": bool(case_sensitive),
        "highlightAll": bool(highlight_all),
        "phraseSearch": bool(phrase_search),
    }
    return """((req) => {%s
  const bus = app && app.eventBus;
  if (!bus || typeof bus.dispatch !== "function") return false;
  // A new query restarts at once with "again"; an empty type waits for typing to pause.
  bus.dispatch("find", {
    source: window,
    type: "again",
    query: req.query,
    caseSensitive: req.caseSensitive,
    entireWord: false,
    highlightAll: req.highlightAll,
    phraseSearch: req.phraseSearch,
    findPrevious: false,
    matchDiacritics: false,
  });
  return true;
})(%s)""" % (_PRELUDE, _args(request))


def select_match_script(page_index: int, match_index: int) -> str:
    return """((pageIdx, matchIdx) => {%s
  if (!fc) return false;
  try {
    const selected = fc._selected;
    if (selected && typeof selected === "object") {
      selected.pageIdx = pageIdx;
      selected.matchIdx = matchIdx;
    }
    const offset = fc._offset;
    if (offset && typeof offset === "object") {
      offset.pageIdx = pageIdx;
      offset.matchIdx = matchIdx;
      offset.wrapped = false;
    }
    return true;
  } catch (e) {
    return false;
  }
})(%s)""" % (_PRELUDE, _args(int(page_index), int(match_index)))


def set_scroll_script(scroll_top: float, scroll_left: float) -> str:
    return """((top, left) => {%s
  if (!container) return false;
  container.scrollTop = top;
  container.scrollLeft = left;
  return true;
})(%s)""" % (_PRELUDE, _args(float(scroll_top), float(scroll_left)))


def add_scroll_listener_script(token: str) -> str:
    return """((token) => {%s
  const previous = window.__varhlScrollListener;
  if (previous) { try { previous.dispose(); } catch (e) {} }
  window.__varhlScrollListener = null;
  if (!container) return false;
  const onScroll = () => {
    const bridge = window.__varhlBridge;
    if (bridge) bridge.onViewerScroll(token, container.scrollTop, container.scrollLeft);
  };
  container.addEventListener("scroll", onScroll, {passive: true});
  window.__varhlScrollListener = {
    token,
    dispose: () => container.removeEventListener("scroll", onScroll),
  };
  return true;
})(%s)""" % (_PRELUDE, _args(token))


def remove_listener_script(slot: str, token: str) -> str:
    return """((slot, token) => {
  const listener = window[slot];
  if (!listener || listener.token !== token) return false;
  try { listener.dispose(); } catch (e) {}
  window[slot] = null;
  return true;
})(%s)""" % _args(slot, token)


def install_stylesheet_script(style_id: str, css: str) -> str:
    return """((id, css) => {
  let el = document.getElementById(id);
  if (!el) {
    el = document.createElement("style");
    el.id = id;
    (document.head || document.documentElement).appendChild(el);
  }
  if (el.textContent !== css) el.textContent = css;
  return true;
})(%s)""" % _args(style_id, css)


def apply_marker_script(attribute: str, page_number: int, match_index: int) -> str:
    return """((attr, pageNumber, matchIndex) => {
  document.querySelectorAll("[" + attr + "]").forEach((el) => el.removeAttribute(attr));
  const page = document.querySelector('.page[data-page-number="' + pageNumber + '"]');
  if (!page) return false;
  const layer = page.querySelector(".textLayer");
  if (!layer) return false;
  // A match split across spans renders as begin/middle/end pieces.
  const starts = Array.from(layer.querySelectorAll(".highlight")).filter(
    (el) => !el.classList.contains("middle") && !el.classList.contains("end")
  );
  if (matchIndex < 0 || matchIndex >= starts.length) return false;
  starts[matchIndex].setAttribute(attr, "true");
  return true;
})(%s)""" % _args(attribute, int(page_number), int(match_index))


def clear_marker_script(attribute: str) -> str:
    return """((attr) => {
  document.querySelectorAll("[" + attr + "]").forEach((el) => el.removeAttribute(attr));
  return true;
})(%s)""" % _args(attribute)


def observe_page_script(token: str, page_number: int) -> str:
    return """((token, pageNumber) => {%s
  const previous = window.__varhlObserver;
  if (previous) { try { previous.dispose(); } catch (e) {} }
  window.__varhlObserver = null;
  const root = container || document.body;
  if (!root || typeof MutationObserver === "undefined") return false;
  const selector = '.page[data-page-number="' + pageNumber + '"]';
  const inside = (node) => !!(node && node.nodeType === 1 && node.closest(selector));
  const touches = (node) => inside(node) || !!(node && node.nodeType === 1 && node.querySelector(selector));
  const observer = new MutationObserver((records) => {
    for (const record of records) {
      if (
        inside(record.target) ||
        Array.prototype.some.call(record.addedNodes, touches) ||
        Array.prototype.some.call(record.removedNodes, touches)
      ) {
        const bridge = window.__varhlBridge;
        if (bridge) bridge.onPageMutated(token, pageNumber);
        return;
      }
    }
  });
  observer.observe(root, {childList: true, subtree: true});
  window.__varhlObserver = {token, dispose: () => observer.disconnect()};
  return true;
})(%s)""" % (_PRELUDE, _args(token, int(page_number)))


def add_hover_listener_script(token: str) -> str:
    return """((token) => {%s
  const previous = window.__varhlHover;
  if (previous) { try { previous.dispose(); } catch (e) {} }
  window.__varhlHover = null;
  const root = container || document.body;
  if (!root) return false;
  const occurrence = (node) =>
    node && node.nodeType === 1 && node.closest ? node.closest(".textLayer .highlight") : null;
  const over = (event) => {
    const el = occurrence(event.target);
    if (!el || (event.relatedTarget && el.contains(event.relatedTarget))) return;
    const bridge = window.__varhlBridge;
    if (bridge) bridge.onOccurrenceHover(token, event.clientX, event.clientY);
  };
  const out = (event) => {
    const el = occurrence(event.target);
    if (!el || (event.relatedTarget && el.contains(event.relatedTarget))) return;
    const bridge = window.__varhlBridge;
    if (bridge) bridge.onOccurrenceLeave(token);
  };
  root.addEventListener("mouseover", over);
  root.addEventListener("mouseout", out);
  window.__varhlHover = {
    token,
    dispose: () => {
      root.removeEventListener("mouseover", over);
      root.removeEventListener("mouseout", out);
    },
  };
  return true;
})(%s)""" % (_PRELUDE, _args(token))


def set_current_page_script(page_number: int) -> str:
    return """((pageNumber) => {%s
  if (app && "page" in app) {
    app.page = pageNumber;
    return true;
  }
  if (viewer) {
    viewer.currentPageNumber = pageNumber;
    return true;
  }
  return false;
})(%s)""" % (_PRELUDE, _args(int(page_number)))


def page_text_script(page_index: int) -> str:
    return """((pageIndex) => {%s
  const contents = fc ? (fc._pageContents || fc.pageContents || null) : null;
  const text = contents ? contents[pageIndex] : null;
  return typeof text === "string" ? text : "";
})(%s)""" % (_PRELUDE, _args(int(page_index)))


SCROLL_LISTENER_SLOT = "__varhlScrollListener"
OBSERVER_SLOT = "__varhlObserver"
HOVER_SLOT = "__varhlHover"
