"""
Page-side script and the request/response bridge used to call it.

All DOM work runs inside one fixed script installed as ``window.__contrastScan``.
Python never ships closures to the page: every call is a request
``{fn, args, version}`` answered with ``{ok, result}`` or ``{ok: false, error}``.
"""

import logging
from typing import Any, Dict, Optional

from .site_rules import SiteRules

logger = logging.getLogger(__name__)

PAGE_SCRIPT_VERSION = "3"

FUNCTION_IDS = (
    "scanChunk",
    "detectStrategy",
    "dismissOverlays",
    "cleanup",
    "forceRender",
    "scrollTo",
    "scrollBy",
    "isAtEnd",
    "readTranslateX",
    "snapNext",
    "hideMain",
    "showMain",
    "refreshRect",
    "candidateBackground",
    "mountIsolated",
    "isolatedReady",
    "unmountIsolated",
    "findLogo",
    "cloneTextLogo",
    "contentImages",
    "hideConsent",
    "restoreConsent",
)

PAGE_SCRIPT = r"""
(() => {
  const VERSION = '__VERSION__';
  if (window.__contrastScan && window.__contrastScan.version === VERSION) return VERSION;

  const MEDIA_TAGS = ['IMG', 'VIDEO', 'CANVAS', 'PICTURE'];
  const sleep = (ms) => new Promise((r) => setTimeout(r, ms));
  let R = { lists: {}, words: {} };
  let vw = window.innerWidth;
  let vh = window.innerHeight;

  const sel = (key) => R[key] || '';
  const list = (key) => (R.lists && R.lists[key]) || [];
  const words = (key) => (R.words && R.words[key]) || [];
  const descendant = (key, suffix) => list(key).map((s) => `${s} ${suffix}`).join(', ');
  const qa = (selector, root) => {
    if (!selector) return [];
    try { return Array.from((root || document).querySelectorAll(selector)); } catch (e) { return []; }
  };
  const q = (selector, root) => {
    if (!selector) return null;
    try { return (root || document).querySelector(selector); } catch (e) { return null; }
  };
  const within = (el, selector) => {
    if (!el || !selector || !el.closest) return null;
    try { return el.closest(selector); } catch (e) { return null; }
  };
  const matches = (el, selector) => {
    if (!el || !selector) return false;
    try { return el.matches(selector); } catch (e) { return false; }
  };
  const wordPattern = (key) => {
    const ws = words(key);
    if (!ws.length) return null;
    return new RegExp(ws.map((w) => w.replace(/[.*+?^${}()|[\]\\]/g, '\\$&')).join('|'), 'i');
  };

  const style = (el, pseudo) => window.getComputedStyle(el, pseudo || null);
  const isHiddenStyle = (cs) => cs.display === 'none' || cs.visibility === 'hidden' || cs.opacity === '0';
  const hasUrlBg = (cs) => !!(cs.backgroundImage && cs.backgroundImage !== 'none' && cs.backgroundImage.includes('url'));
  const hasPaintBg = (cs) => !!(cs.backgroundImage && cs.backgroundImage !== 'none' &&
    (cs.backgroundImage.includes('url') || cs.backgroundImage.includes('gradient')));
  const rectOf = (r) => ({ x: r.x, y: r.y, width: r.width, height: r.height });
  const inViewport = (r) => !(r.y + r.height < 0 || r.y > vh || r.x + r.width < 0 || r.x > vw);
  const urlOf = (bg) => { const m = (bg || '').match(/url\(['"]?([^'")]+)['"]?\)/); return m ? m[1] : ''; };

  const alphaOf = (val) => {
    const m = String(val || '').match(/rgba?\(([^)]+)\)/);
    if (!m) return 1;
    const parts = m[1].split(/[\s,\/]+/).filter(Boolean);
    if (parts.length < 4) return 1;
    return parts[3].endsWith('%') ? parseFloat(parts[3]) / 100 : parseFloat(parts[3]);
  };

  const toHex = (val) => {
    if (!val) return null;
    const v = String(val).trim().toLowerCase();
    if (v === 'transparent' || v === 'none') return null;
    if (v === 'white') return '#FFFFFF';
    if (v === 'black') return '#000000';
    if (v[0] === '#') {
      let h = v.slice(1);
      if (h.length === 3 || h.length === 4) h = h.split('').map((c) => c + c).join('');
      if (!/^[0-9a-f]{6}([0-9a-f]{2})?$/.test(h)) return null;
      if (h.length === 8 && parseInt(h.slice(6), 16) / 255 < 0.05) return null;
      return '#' + h.slice(0, 6).toUpperCase();
    }
    if (!v.startsWith('rgb')) return null;
    if (alphaOf(v) < 0.05) return null;
    const nums = v.match(/-?[\d.]+/g);
    if (!nums || nums.length < 3) return null;
    return '#' + nums.slice(0, 3)
      .map((n) => Math.max(0, Math.min(255, Math.round(parseFloat(n)))).toString(16).padStart(2, '0'))
      .join('').toUpperCase();
  };

  // ---------------------------------------------------------------- geometry

  const isRectViewportVisible = (rect, minRatio, minW, minH) => {
    if (rect.width <= 0 || rect.height <= 0) return false;
    const left = Math.max(0, rect.x), top = Math.max(0, rect.y);
    const right = Math.min(vw, rect.x + rect.width), bottom = Math.min(vh, rect.y + rect.height);
    const iw = Math.max(0, right - left), ih = Math.max(0, bottom - top);
    return iw >= minW && ih >= minH && (iw * ih) / Math.max(1, rect.width * rect.height) >= minRatio;
  };
  const isElementViewportVisible = (el, minRatio, minW, minH) =>
    !!el && isRectViewportVisible(rectOf(el.getBoundingClientRect()), minRatio, minW, minH);

  const overlapShare = (a, b) => {
    const left = Math.max(a.x, b.left), top = Math.max(a.y, b.top);
    const right = Math.min(a.x + a.width, b.right), bottom = Math.min(a.y + a.height, b.bottom);
    return (Math.max(0, right - left) * Math.max(0, bottom - top)) / Math.max(1, a.width * a.height);
  };

  const isMediaCarrier = (node) => {
    if (MEDIA_TAGS.includes(node.tagName)) return true;
    if (hasUrlBg(style(node))) return true;
    return !!node.querySelector('img, picture, video, canvas');
  };

  const contextContainers = (el, withSection) => {
    const out = [];
    if (el.parentElement) out.push(el.parentElement);
    if (el.parentElement && el.parentElement.parentElement) out.push(el.parentElement.parentElement);
    if (withSection) {
      const section = el.closest('section');
      if (section) out.push(section);
    }
    return out;
  };

  const mediaOverlapForRect = (rect, el) => {
    if (!el || rect.width < 4 || rect.height < 4) return false;
    for (const container of contextContainers(el, true)) {
      for (const sib of Array.from(container.querySelectorAll('*'))) {
        if (sib === el || sib.contains(el) || el.contains(sib)) continue;
        if (isHiddenStyle(style(sib)) || !isMediaCarrier(sib)) continue;
        if (overlapShare(rect, sib.getBoundingClientRect()) >= 0.25) return true;
      }
    }
    return false;
  };

  const overlappingMediaSiblings = (el) => {
    if (!el) return false;
    const r = el.getBoundingClientRect();
    if (r.width < 4 || r.height < 4) return false;
    const target = rectOf(r);
    for (const container of contextContainers(el, false)) {
      for (const sib of Array.from(container.children)) {
        if (sib === el || sib.contains(el) || el.contains(sib)) continue;
        if (isHiddenStyle(style(sib)) || !isMediaCarrier(sib)) continue;
        if (overlapShare(target, sib.getBoundingClientRect()) >= 0.25) return true;
      }
    }
    return false;
  };

  // ------------------------------------------------------- structural probes

  const structuralColor = (el) => {
    let current = el;
    let hasImage = false;
    while (current) {
      const cs = style(current);
      if (hasUrlBg(cs)) hasImage = true;
      if (current.parentElement) {
        for (const sib of current.parentElement.children) {
          if (sib === current) continue;
          const ss = style(sib);
          const layered = ss.position === 'absolute' || ss.position === 'fixed' || parseInt(ss.zIndex) < 0;
          if (layered || sib.tagName === 'PICTURE' || sib.tagName === 'IMG') {
            if (['IMG', 'VIDEO', 'PICTURE'].includes(sib.tagName)) hasImage = true;
            if (hasUrlBg(ss)) hasImage = true;
            if (sib.querySelector('img, picture, video')) hasImage = true;
          }
        }
      }
      if (hasImage) return 'IMAGE';
      const hex = toHex(cs.backgroundColor);
      if (hex) return hex;
      current = current.parentElement;
    }
    return '#FFFFFF';
  };

  const solidOnly = (el) => {
    let current = el;
    while (current) {
      const cs = style(current);
      if (!isHiddenStyle(cs)) {
        const hex = toHex(cs.backgroundColor);
        if (hex && hex !== '#000000' && alphaOf(cs.backgroundColor) >= 0.15) return hex;
      }
      current = current.parentElement;
    }
    return null;
  };

  const structuralImage = (el) => {
    const overlaps = (a, b) => Math.min(a.right, b.right) - Math.max(a.left, b.left) > 4 &&
      Math.min(a.bottom, b.bottom) - Math.max(a.top, b.top) > 4;
    let current = el;
    for (let level = 0; current && level < 8; level++) {
      if (hasUrlBg(style(current))) return true;
      if (current.parentElement) {
        const cr = current.getBoundingClientRect();
        const found = Array.from(current.parentElement.children).some((sib) => {
          if (sib === current) return false;
          const ss = style(sib);
          const layered = ss.position === 'absolute' || ss.position === 'fixed' || parseInt(ss.zIndex) < 0;
          if (!overlaps(cr, sib.getBoundingClientRect())) return false;
          if (MEDIA_TAGS.includes(sib.tagName)) return layered;
          if (layered && hasUrlBg(ss)) return true;
          if (sib.querySelector('img, picture, video, canvas')) return layered;
          return false;
        });
        if (found) return true;
      }
      current = current.parentElement;
    }
    return false;
  };

  const pseudoMediaOverlay = (el) => {
    let current = el;
    for (let i = 0; i < 4 && current; i++) {
      if (hasPaintBg(style(current, '::before')) || hasPaintBg(style(current, '::after'))) return true;
      current = current.parentElement;
    }
    return false;
  };

  const overlayLike = (el) => {
    if (!el) return false;
    let current = el;
    for (let i = 0; i < 4 && current; i++) {
      const cs = style(current);
      const z = parseInt(cs.zIndex);
      if (['absolute', 'fixed', 'sticky'].includes(cs.position)) return true;
      if (!isNaN(z) && z > 0) return true;
      current = current.parentElement;
    }
    return pseudoMediaOverlay(el);
  };

  const opaqueModalAncestor = (el) => {
    const pattern = wordPattern('modalWords');
    let current = el;
    for (let i = 0; i < 8 && current; i++) {
      const role = (current.getAttribute('role') || '').toLowerCase();
      const ariaModal = (current.getAttribute('aria-modal') || '').toLowerCase() === 'true';
      const idClass = `${current.id || ''} ${current.className || ''}`.toLowerCase();
      if (role === 'dialog' || ariaModal || (pattern && pattern.test(idClass))) {
        const r = current.getBoundingClientRect();
        if (toHex(style(current).backgroundColor) && r.width > 240 && r.height > 100) return true;
      }
      current = current.parentElement;
    }
    return false;
  };

  const fullBleedSection = (el) => {
    if (!el) return false;
    const section = el.closest('section');
    if (!section) return false;
    const sr = section.getBoundingClientRect();
    if (sr.width < 100 || sr.height < 100) return false;
    const sectionArea = sr.width * sr.height;
    for (const media of section.querySelectorAll('picture, img, video')) {
      const mr = media.getBoundingClientRect();
      if ((mr.width * mr.height) / sectionArea >= 0.4 && mr.width > sr.width * 0.5) return true;
    }
    return false;
  };

  // ------------------------------------------------------------- hit testing

  const sharesNonTrivialAncestor = (textParent, el) => {
    const stopTags = words('nonTrivialStopTags');
    const stopIds = words('nonTrivialStopIds');
    let tp = textParent;
    for (let i = 0; i < 4 && tp; i++) {
      if (tp.contains(el)) {
        return !stopTags.includes(tp.tagName.toLowerCase()) && !stopIds.includes(tp.id);
      }
      tp = tp.parentElement;
    }
    return false;
  };

  const backgroundAt = (x, y, textNode, areaMode) => {
    const finalEl = q(sel('finalSection'));
    const skipFinal = !!(textNode && finalEl && within(textNode.parentElement, sel('mainLayer')));
    for (const el of document.elementsFromPoint(x, y)) {
      const cs = style(el);
      if (isHiddenStyle(cs)) continue;
      if (skipFinal && (el === finalEl || finalEl.contains(el))) continue;
      const hex = toHex(cs.backgroundColor);
      const urlBg = hasUrlBg(cs);
      const isMedia = MEDIA_TAGS.includes(el.tagName);
      if (areaMode || !textNode) {
        if (isMedia) return 'IMAGE';
        if (hex) return hex;
        if (urlBg) return 'IMAGE';
        continue;
      }
      const isAncestor = el.contains(textNode) || el === textNode.parentElement;
      if (!isAncestor) {
        if (isMedia) {
          if (textNode.parentElement && sharesNonTrivialAncestor(textNode.parentElement, el)) return 'IMAGE';
          continue;
        }
        if (hex || urlBg) return 'OCCLUDED';
        continue;
      }
      if (isMedia) return 'IMAGE';
      const after = style(el, '::after');
      const before = style(el, '::before');
      const afterHex = toHex(after.backgroundColor);
      if (afterHex) return afterHex;
      if (hasPaintBg(after)) return 'IMAGE';
      if (hex) return hex;
      if (hasPaintBg(cs)) return 'IMAGE';
      const beforeHex = toHex(before.backgroundColor);
      if (beforeHex) return beforeHex;
      if (hasPaintBg(before)) return 'IMAGE';
    }
    return 'TRANSPARENT';
  };

  // Evidence consumed by the Python-side resolver rules.
  const probe = (cx, cy, node, el, rect, horizontal, fullBleed) => {
    const hit = backgroundAt(cx, cy, node, false);
    const inCookieModal = !!within(el, sel('cookieModal'));
    const opaqueModal = opaqueModalAncestor(el);
    const ev = {
      hit, inCookieModal, opaqueModal,
      fullBleed: fullBleed === undefined ? fullBleedSection(el) : fullBleed,
      pseudoOverlay: pseudoMediaOverlay(el),
    };
    if (inCookieModal || opaqueModal) ev.modalColor = inCookieModal ? solidOnly(el) : structuralColor(el);
    if (horizontal) {
      ev.viewportVisible = isElementViewportVisible(el, 0.08, 16, 10);
      ev.overlayLike = overlayLike(el);
      ev.mediaSiblings = overlappingMediaSiblings(el);
      ev.overlayLikeNear = ev.overlayLike || overlayLike(el.parentElement);
      ev.mediaOverlap = mediaOverlapForRect(rect, el) || mediaOverlapForRect(rect, el.parentElement);
    }
    if (hit === 'TRANSPARENT' || hit === '#FFFFFF') {
      ev.structuralImage = structuralImage(el);
      ev.structuralColor = structuralColor(el);
    }
    if (within(el, sel('footerFallback'))) ev.areaHit = backgroundAt(cx, cy, null, true);
    return ev;
  };

  // ------------------------------------------------------------ chunk scan

  const fontFamilyOf = (cs) => (cs.fontFamily || '').split(',')[0].replace(/["']/g, '').trim();
  const isTextTrick = (cs) => {
    const fontSize = parseFloat(cs.fontSize);
    const fontZero = fontSize === 0 || (cs.font || '').includes('0/0') || (cs.font || '').includes('0 /');
    return { fontZero, indentHidden: parseInt(cs.textIndent) < -9000 };
  };

  const filteredColor = (filterStr) => {
    if (!filterStr || filterStr === 'none') return null;
    return filterStr;
  };

  const svgFill = (svg) => {
    const g = svg.querySelector('g[fill]');
    if (g) return g.getAttribute('fill');
    const path = svg.querySelector('path[fill]');
    if (path) return path.getAttribute('fill');
    return svg.getAttribute('fill');
  };

  const scanChunk = (args) => {
    const horizontal = args.strategy === 'HORIZONTAL_APP';
    const loopIndex = args.loopIndex;
    const step = args.gridStep || 150;
    const debug = [];
    const bgCounts = {};
    const imageCounts = {};
    let totalScore = 0;
    let signature = '';

    const mainEl = q(sel('mainLayer'));
    const mainTransform = mainEl ? style(mainEl).transform : 'none';
    const mainIsTransformed = !!(mainTransform && mainTransform !== 'none');
    const finalSel = sel('finalSection');
    const consentSel = sel('consentContainer');

    let consentRect = null;
    for (const el of qa(sel('consentDialog'))) {
      if (isHiddenStyle(style(el))) continue;
      const r = el.getBoundingClientRect();
      if (r.width > 200 && r.height > 100 && r.bottom > 0 && r.top < vh) { consentRect = rectOf(r); break; }
    }
    const occludedByConsent = (rect) => {
      if (!consentRect) return false;
      const cx = rect.x + rect.width / 2, cy = rect.y + rect.height / 2;
      return cx >= consentRect.x && cx <= consentRect.x + consentRect.width &&
        cy >= consentRect.y && cy <= consentRect.y + consentRect.height;
    };

    for (let y = 0; y < vh; y += step) {
      for (let x = 0; x < vw; x += step) {
        const hit = backgroundAt(x, y, null, true);
        if (hit === 'IMAGE') {
          imageCounts['CSS-BG'] = (imageCounts['CSS-BG'] || 0) + 1;
          signature += 'IMG';
          totalScore++;
        } else if (hit && hit !== 'TRANSPARENT') {
          bgCounts[hit] = (bgCounts[hit] || 0) + 1;
          totalScore++;
        }
      }
    }

    const textNodes = [];
    const seen = new Set();
    const barAnchorSel = descendant('topBar', 'a');
    const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT);
    while (walker.nextNode()) {
      const node = walker.currentNode;
      const parent = node.parentElement;
      if (!parent) continue;
      try {
        const barAnchor = within(parent, barAnchorSel);
        const isTopBarTarget = !!(barAnchor && matches(barAnchor, sel('topBarTargets')));
        if (within(parent, sel('skipContainers')) || within(parent, sel('skipChrome'))) continue;
        if (within(parent, sel('topBar')) && !isTopBarTarget) continue;

        const text = (node.textContent || '').trim();
        if (!text || !/[\p{L}\p{N}]/u.test(text)) continue;

        let rect;
        try {
          const range = document.createRange();
          range.selectNode(node);
          const rr = range.getBoundingClientRect();
          if (rr.width < 1 || rr.height < 1) continue;
          rect = { x: Math.max(0, rr.x - 4), y: Math.max(0, rr.y - 4), width: rr.width + 8, height: rr.height + 8 };
        } catch (e) {
          rect = rectOf(parent.getBoundingClientRect());
        }
        const posKey = `${text}_${Math.round(rect.x)}_${Math.round(rect.y)}`;
        if (seen.has(posKey)) continue;
        if (!within(parent, consentSel) && occludedByConsent(rect)) continue;

        const iw = Math.max(0, Math.min(vw, rect.x + rect.width) - Math.max(0, rect.x));
        const ih = Math.max(0, Math.min(vh, rect.y + rect.height) - Math.max(0, rect.y));
        const ratio = (iw * ih) / Math.max(1, rect.width * rect.height);
        if (!(iw >= args.minVisibleWidth && ih >= args.minVisibleHeight && ratio >= args.visibilityRatio)) continue;

        const cs = style(parent);
        if (cs.visibility === 'hidden' || cs.display === 'none') continue;
        const fullBleed = fullBleedSection(parent);
        if (cs.opacity === '0') {
          if (!fullBleed) continue;
          parent.style.setProperty('opacity', '1', 'important');
        }
        if (horizontal && !isElementViewportVisible(parent, 0.02, 8, 8)) continue;

        signature += text.substring(0, 5);
        const cx = rect.x + rect.width / 2, cy = rect.y + rect.height / 2;
        const isInFinal = !!within(parent, finalSel);
        textNodes.push({
          text: text.substring(0, 100), tagName: parent.tagName.toLowerCase(),
          textColor: toHex(cs.color), fontFamily: fontFamilyOf(cs),
          fontWeight: cs.fontWeight, fontSize: cs.fontSize, rect,
          captureIndex: loopIndex, isInFinal, isStaticBehindMain: isInFinal && mainIsTransformed,
          evidence: probe(cx, cy, node, parent, rect, horizontal, fullBleed),
        });
        seen.add(posKey);
      } catch (e) {
        debug.push(`text node skipped: ${e && e.message}`);
      }
    }

    const fallbackLabels = horizontal ? scanOverlayLabels(args, consentSel, occludedByConsent, mainIsTransformed, debug) : [];
    const arrows = scanArrows(loopIndex, mainIsTransformed, debug);
    const nonText = scanNonText(loopIndex, debug);

    const finalEl = q(finalSel);
    let hasFinalSection = false;
    if (finalEl) {
      const r = finalEl.getBoundingClientRect();
      hasFinalSection = r.top < vh && r.bottom > 0 && r.height > 0;
    }
    return {
      bgCounts, imageCounts, totalScore, signature, textNodes, fallbackLabels, arrows, nonText,
      hasFinalSection, hasStaticFinalBehindMain: !!(finalEl && mainIsTransformed), debug,
    };
  };

  const clampToViewport = (rect) => {
    const x0 = Math.max(0, rect.x), y0 = Math.max(0, rect.y);
    return {
      x: x0, y: y0,
      width: Math.max(0, Math.min(vw, rect.x + rect.width) - x0),
      height: Math.max(0, Math.min(vh, rect.y + rect.height) - y0),
    };
  };

  const estimateTextRect = (el, cs, text) => {
    const base = el.getBoundingClientRect();
    const fontSize = Math.max(10, parseFloat(cs.fontSize || '16') || 16);
    const estW = Math.max(80, Math.min(420, text.length * fontSize * 0.62));
    const visLeft = Math.max(0, base.left), visRight = Math.min(vw, base.right);
    const visTop = Math.max(0, base.top), visBottom = Math.min(vh, base.bottom);
    const visW = Math.max(1, visRight - visLeft), visH = Math.max(1, visBottom - visTop);
    const estH = Math.max(20, Math.min(visH, fontSize * 1.8));
    let x = visLeft + (visW - Math.min(estW, visW)) / 2;
    const align = (cs.textAlign || '').toLowerCase();
    if (align.includes('left') || align.includes('start')) x = visLeft + 8;
    if (align.includes('right') || align.includes('end')) x = visRight - estW - 8;
    const y = visH > estH * 2.5 ? visBottom - estH - 8 : visTop + (visH - estH) / 2;
    return clampToViewport({ x, y, width: Math.min(estW, visW), height: estH });
  };

  const tightTextRect = (el) => {
    const tw = document.createTreeWalker(el, NodeFilter.SHOW_TEXT);
    let minX = Infinity, minY = Infinity, maxX = -Infinity, maxY = -Infinity;
    while (tw.nextNode()) {
      const n = tw.currentNode;
      if (!(n.textContent || '').trim()) continue;
      const range = document.createRange();
      range.selectNodeContents(n);
      for (const cr of Array.from(range.getClientRects())) {
        if (cr.width < 1 || cr.height < 1) continue;
        minX = Math.min(minX, cr.x); minY = Math.min(minY, cr.y);
        maxX = Math.max(maxX, cr.x + cr.width); maxY = Math.max(maxY, cr.y + cr.height);
      }
    }
    if (!isFinite(minX)) return null;
    return { x: minX, y: minY, width: maxX - minX, height: maxY - minY };
  };

  const scanOverlayLabels = (args, consentSel, occludedByConsent, mainIsTransformed, debug) => {
    const out = [];
    const skip = [sel('skipContainers'), sel('topBar'), sel('skipChrome')].filter(Boolean).join(', ');
    for (const el of qa(sel('overlayLabels'))) {
      try {
        if (within(el, skip)) continue;
        const cs = style(el);
        if (cs.visibility === 'hidden' || cs.display === 'none') continue;
        const trick = isTextTrick(cs);
        if (trick.fontZero || trick.indentHidden) continue;
        const text = (el.textContent || '').replace(/\s+/g, ' ').trim();
        if (text.length < 3 || text.length > 48 || !/[A-Za-z]/.test(text)) continue;

        const fullBleed = fullBleedSection(el);
        let textColor = toHex(cs.color);
        if (!textColor) {
          if (!fullBleed) continue;
          textColor = '#FFFFFF';
        }
        const parent = el.parentElement || el;
        if (!(overlayLike(el) || overlayLike(parent) || fullBleed)) continue;
        if (cs.opacity === '0' && fullBleed) el.style.setProperty('opacity', '1', 'important');

        const tight = tightTextRect(el);
        const real = !!(tight && tight.width > 4 && tight.height > 4);
        let rect = real
          ? clampToViewport({ x: tight.x - 4, y: tight.y - 4, width: tight.width + 8, height: tight.height + 8 })
          : estimateTextRect(el, cs, text);
        if (real && (rect.width < 8 || rect.height < 8)) continue;
        if (real && text.length <= 40 && (rect.width > 520 || rect.height > 180)) continue;
        if (!real && (rect.width > 420 || rect.height > 180 || rect.width < 8 || rect.height < 8)) {
          rect = estimateTextRect(el, cs, text);
        }
        if (rect.width < 8 || rect.height < 8) continue;
        if (!isRectViewportVisible(rect, 0.08, 16, 10)) continue;
        if (!within(el, consentSel) && occludedByConsent(rect)) continue;

        const mediaOverlap = fullBleed ? true : (mediaOverlapForRect(rect, el) || mediaOverlapForRect(rect, parent));
        const cx = rect.x + rect.width / 2, cy = rect.y + rect.height / 2;
        const isInFinal = !!within(el, sel('finalSection'));
        out.push({
          text: text.substring(0, 100), tagName: el.tagName.toLowerCase(), textColor,
          fontFamily: fontFamilyOf(cs), fontWeight: cs.fontWeight, fontSize: cs.fontSize, rect,
          captureIndex: args.loopIndex, isInFinal, isStaticBehindMain: isInFinal && mainIsTransformed,
          estimatedRect: !real, fullBleed, mediaOverlap,
          evidence: (!fullBleed && mediaOverlap) ? probe(cx, cy, el.firstChild || el, el, rect, true, fullBleed) : null,
        });
      } catch (e) {
        debug.push(`overlay label skipped: ${e && e.message}`);
      }
    }
    return out;
  };

  const scanArrows = (loopIndex, mainIsTransformed, debug) => {
    const out = [];
    const seenKeys = new Set();
    for (const el of qa('a, div, span, button, li')) {
      try {
        if (within(el, sel('skipContainers'))) continue;
        if (isHiddenStyle(style(el))) continue;
        const after = style(el, '::after');
        if (!hasUrlBg(after)) continue;
        const w = parseFloat(after.width), h = parseFloat(after.height);
        if (isNaN(w) || w <= 5 || isNaN(h) || h <= 5) continue;
        const pr = el.getBoundingClientRect();
        let ax, ay;
        if (after.position === 'absolute' || after.position === 'fixed') {
          const r = parseFloat(after.right), t = parseFloat(after.top);
          const l = parseFloat(after.left), b = parseFloat(after.bottom);
          ax = !isNaN(r) ? pr.right - r - w : !isNaN(l) ? pr.left + l : pr.left + (pr.width - w) / 2;
          ay = !isNaN(t) ? pr.top + t : !isNaN(b) ? pr.bottom - b - h : pr.top + (pr.height - h) / 2;
        } else {
          ax = pr.right - w;
          ay = pr.top + (pr.height - h) / 2;
        }
        const rect = { x: Math.max(0, ax - 10), y: Math.max(0, ay - 10), width: w + 20, height: h + 20 };
        const key = `${Math.round(rect.x)}_${Math.round(rect.y)}`;
        const visible = rect.y < vh && rect.y + rect.height > 0 && rect.x < vw && rect.x + rect.width > 0;
        if (!visible || seenKeys.has(key)) continue;
        const isInFinal = !!within(el, sel('finalSection'));
        out.push({
          rect, captureIndex: loopIndex, isInFinal, isStaticBehindMain: isInFinal && mainIsTransformed,
          areaHit: backgroundAt(rect.x + rect.width / 2, rect.y + rect.height / 2, null, true),
        });
        seenKeys.add(key);
      } catch (e) {
        debug.push(`arrow skipped: ${e && e.message}`);
      }
    }
    return out;
  };

  const scanNonText = (loopIndex, debug) => {
    const out = [];
    const seenKeys = new Set();
    const skip = sel('skipContainers');
    const areaAt = (r) => backgroundAt(r.x + r.width / 2, r.y + r.height / 2, null, true);
    const push = (key, item) => {
      if (seenKeys.has(key)) return;
      seenKeys.add(key);
      out.push(Object.assign({ captureIndex: loopIndex }, item));
    };
    const guarded = (label, fn) => { try { fn(); } catch (e) { debug.push(`${label} skipped: ${e && e.message}`); } };

    for (const el of qa('a, button')) {
      guarded('background icon', () => {
        if (within(el, skip)) return;
        const cs = style(el);
        if (cs.display === 'none' || cs.visibility === 'hidden' || !hasUrlBg(cs)) return;
        const trick = isTextTrick(cs);
        const colorTransparent = cs.color === 'transparent' || cs.color === 'rgba(0, 0, 0, 0)';
        const overflowHidden = cs.overflow === 'hidden' && (cs.whiteSpace === 'nowrap' || trick.indentHidden);
        if (!trick.fontZero && !colorTransparent && !trick.indentHidden && !overflowHidden) return;
        const r = el.getBoundingClientRect();
        if (r.width < 5 || r.height < 5 || !inViewport(r)) return;
        const src = urlOf(cs.backgroundImage);
        const classes = (el.className && el.className.toString()) || '';
        const hints = words('uiControlClassHints');
        push(`bg_${Math.round(r.x)}_${Math.round(r.y)}`, {
          type: hints.some((h) => classes.includes(h)) ? 'ui-control' : 'icon-bg-image',
          label: ((el.textContent || '').trim() || el.getAttribute('aria-label') || el.getAttribute('title') || 'Icon').substring(0, 80),
          tagName: el.tagName, src: src.substring(0, 200), isSvg: src.includes('.svg'),
          cssFilter: filteredColor(cs.filter), rect: rectOf(r), href: el.href || null,
          bgColor: areaAt(r),
        });
      });
    }

    for (const img of qa('a img, button img')) {
      guarded('linked image', () => {
        if (within(img, skip)) return;
        const r = img.getBoundingClientRect();
        if (r.width < 1 || r.height < 1 || !inViewport(r)) return;
        const cs = style(img);
        if (cs.display === 'none' || cs.visibility === 'hidden') return;
        if (r.width <= 2 || r.height <= 2 || (r.width > 250 && r.height > 250)) return;
        const file = (img.src || '').split('/').pop() || '';
        const link = img.closest('a');
        push(`img_${Math.round(r.x)}_${Math.round(r.y)}_${file}`, {
          type: r.width <= 50 && r.height <= 50 ? 'social-icon' : 'partner-logo',
          label: img.alt || (link && (link.textContent || '').trim()) || file.replace(/\.[^.]+$/, '') || 'Image',
          tagName: 'IMG', src: (img.src || '').substring(0, 200), alt: img.alt || '',
          isSvg: (img.src || '').includes('.svg'), cssFilter: filteredColor(cs.filter),
          rect: rectOf(r), href: link ? link.href : null, bgColor: areaAt(r),
        });
      });
    }

    for (const slider of qa(sel('consentSliders'))) {
      guarded('consent toggle', () => {
        const cs = style(slider);
        if (isHiddenStyle(cs)) return;
        const r = slider.getBoundingClientRect();
        if (r.width < 12 || r.height < 10 || !inViewport(r)) return;
        const knob = style(slider, '::before');
        let knobColor = toHex(knob.backgroundColor) || toHex(knob.borderColor);
        if (!knobColor && knob.content && knob.content !== 'none') knobColor = '#FFFFFF';
        const wrapper = within(slider, sel('consentSliderWrapper'));
        const labelEl = wrapper && (wrapper.querySelector('label strong') || wrapper.querySelector('label'));
        const label = ((labelEl && labelEl.textContent) || 'Cookie toggle').replace(/\s+/g, ' ').trim().substring(0, 80);
        push(`slider_${Math.round(r.x)}_${Math.round(r.y)}_${Math.round(r.width)}_${Math.round(r.height)}`, {
          type: 'ui-control', label: label || 'Cookie toggle', tagName: slider.tagName, src: '',
          cssFilter: filteredColor(cs.filter), fillColor: knobColor, rect: rectOf(r), href: null,
          bgColor: toHex(cs.backgroundColor) || areaAt(r),
        });
      });
    }

    for (const svg of qa(sel('brandSvg'))) {
      guarded('inline svg', () => {
        const r = svg.getBoundingClientRect();
        if (r.width < 10 || r.height < 10 || !inViewport(r)) return;
        if (isHiddenStyle(style(svg))) return;
        if (within(svg, sel('partnerLists'))) return;
        const title = svg.querySelector('title');
        const link = svg.closest('a');
        push(`svg_${Math.round(r.x)}_${Math.round(r.y)}`, {
          type: 'inline-svg-icon',
          label: (title && title.textContent.trim()) || (link && (link.textContent || '').trim()) || 'SVG Logo',
          tagName: 'SVG', src: '', isSvg: true, fillColor: svgFill(svg), rect: rectOf(r),
          href: link ? link.href : null, bgColor: areaAt(r),
        });
      });
    }

    for (const burger of qa(sel('hamburger'))) {
      guarded('hamburger', () => {
        const r = burger.getBoundingClientRect();
        if (r.width < 10 || r.height < 10 || !inViewport(r)) return;
        const cs = style(burger);
        if (isHiddenStyle(cs)) return;
        let lineColor = null;
        for (const line of burger.querySelectorAll('span, div, i')) {
          const lc = style(line).backgroundColor;
          if (toHex(lc)) { lineColor = lc; break; }
        }
        if (!lineColor && toHex(cs.backgroundColor)) lineColor = cs.backgroundColor;
        if (!lineColor) return;
        push(`burger_${Math.round(r.x)}_${Math.round(r.y)}`, {
          type: 'hamburger-icon', label: burger.getAttribute('aria-label') || 'Menu',
          tagName: burger.tagName, src: '', fillColor: lineColor, rect: rectOf(r), href: null,
          bgColor: areaAt(r),
        });
      });
    }
    return out;
  };

  // ------------------------------------------------------- page preparation

  const nukeCss = () => {
    const mobile = sel('mobileBars');
    return `
      ::-webkit-scrollbar { display: none !important; }
      body, html { -ms-overflow-style: none !important; scrollbar-width: none !important; scroll-behavior: auto !important; }
      * { scroll-snap-align: none !important; transition: none !important; }
      ${mobile ? `@media (min-width: 1024px) { ${mobile} { display: none !important; visibility: hidden !important; opacity: 0 !important; pointer-events: none !important; } }` : ''}
    `;
  };
  const injectStyle = (css, id) => {
    if (id && document.getElementById(id)) return;
    const el = document.createElement('style');
    if (id) el.id = id;
    el.innerHTML = css;
    document.head.appendChild(el);
  };

  const dismissOverlays = async (args) => {
    const keywords = words('dismissKeywords');
    let clicked = 0;
    for (const el of qa('button, a, div[role="button"], span')) {
      const r = el.getBoundingClientRect();
      if (r.width <= 0 || r.height <= 0 || style(el).opacity === '0') continue;
      const text = (el.textContent || '').trim();
      const lower = text.toLowerCase();
      const isCookie = lower.includes('cookie') || lower.includes('accept') || lower.includes('consent');
      if (args.keepCookies && isCookie) continue;
      if ((!args.keepCookies && isCookie) || (keywords.some((k) => text.includes(k)) && text.length < 30)) {
        el.click();
        clicked++;
        await sleep(100);
      }
    }
    return clicked;
  };

  const cleanup = (args) => {
    qa(sel('mobileBars')).forEach((el) => el.remove());
    if (args.keepCookies) {
      qa(sel('popups')).forEach((el) => el.remove());
      injectStyle(nukeCss());
      return true;
    }
    qa(sel('consentClickRemove')).forEach((el) => { el.click(); el.remove(); });
    qa(sel('consentRemove')).forEach((el) => el.remove());

    const banner = wordPattern('bannerWords');
    qa('div, section, aside, footer').forEach((el) => {
      if (!['fixed', 'sticky'].includes(style(el).position)) return;
      const r = el.getBoundingClientRect();
      if (!(r.bottom >= vh && r.top > vh - 360)) return;
      const text = `${el.textContent || ''} ${el.id || ''} ${el.className || ''}`.toLowerCase();
      if (banner && banner.test(text)) el.remove();
    });

    const iconSel = 'svg, .logo svg, [class*="hamburger"], [class*="menu"], [aria-label*="menu" i]';
    qa('div, section, footer, aside, header, nav').forEach((el) => {
      if (!['fixed', 'sticky'].includes(style(el).position)) return;
      const r = el.getBoundingClientRect();
      const isBottom = r.bottom >= vh && r.top > vh - 300;
      const isTop = r.top <= 0 && r.height < 150;
      if (!isBottom && !isTop) return;
      const idClass = `${el.id || ''} ${(el.className && el.className.toString()) || ''}`;
      const text = (el.textContent || '').toLowerCase();
      const essential = ['NAV', 'HEADER'].includes(el.tagName) || !!el.closest('header, nav') ||
        /header|nav|menu/i.test(idClass) ||
        el.tagName === 'FOOTER' || el.getAttribute('role') === 'contentinfo' || !!el.closest('footer') ||
        /footer|legal|accessibility|availability|contact|press|fair\s*housing/i.test(idClass) ||
        /legal|accessibility statement|fair housing|press|availability|contact/.test(text) ||
        (isTop && !!el.querySelector(iconSel));
      if (!essential) el.remove();
    });

    if (!args.initial) {
      qa('header, nav, .sidebar').forEach((el) => {
        if (el.querySelector(iconSel)) return;
        if (['fixed', 'sticky', 'absolute'].includes(style(el).position)) el.style.visibility = 'hidden';
      });
    }
    injectStyle(nukeCss());
    return true;
  };

  const forceRender = async () => {
    injectStyle('* { pointer-events: auto !important; }', 'cs-force-pointer-events');
    qa('img[loading="lazy"]').forEach((img) => {
      img.removeAttribute('loading');
      if (img.src) img.src = img.src;
    });
    qa('img, video, picture').forEach((el) => {
      const cs = style(el);
      if (cs.opacity === '0' || cs.visibility === 'hidden') {
        el.style.opacity = '1';
        el.style.visibility = 'visible';
      }
    });
    injectStyle(`
      [style*="opacity: 0"]:not(img):not(video):not(picture):not(canvas),
      [style*="opacity:0"]:not(img):not(video):not(picture):not(canvas) { opacity: 1 !important; }
      .is-inview, .in-view, .aos-animate, .revealed, .visible { opacity: 1 !important; transform: none !important; }
      section p, section a, section span, section h1, section h2, section h3, section h4, section h5, section h6,
      section figcaption, section blockquote, section li, section label,
      section [class*="gallery"], section [class*="caption"] { opacity: 1 !important; visibility: visible !important; }
    `, 'cs-force-reveal');

    const media = new Set(['IMG', 'VIDEO', 'PICTURE', 'CANVAS', 'SOURCE']);
    const skip = sel('skipContainers');
    let revealed = 0;
    const urls = new Set();
    qa('*').forEach((el) => {
      if (!el.style) return;
      for (const cs of [style(el), style(el, '::after'), style(el, '::before')]) {
        const url = hasUrlBg(cs) ? urlOf(cs.backgroundImage) : '';
        if (url) urls.add(url);
      }
      if (media.has(el.tagName)) return;
      if (['HEADER', 'NAV'].includes(el.tagName) || el.closest('header, nav')) return;
      if (within(el, skip)) return;
      const cs = style(el);
      if (cs.opacity === '0') { el.style.setProperty('opacity', '1', 'important'); revealed++; }
      if (cs.visibility === 'hidden') el.style.setProperty('visibility', 'visible', 'important');
    });
    urls.forEach((url) => {
      const img = new Image();
      img.src = url;
      img.style.display = 'none';
      document.body.appendChild(img);
    });
    await Promise.all(qa('img').map((img) => {
      img.decoding = 'sync';
      return img.decode ? img.decode().catch(() => {}) : Promise.resolve();
    }));
    return { revealed, preloaded: urls.size };
  };

  const detectStrategy = async (args) => {
    const doc = document.documentElement;
    const scrollWidth = Math.max(document.body.scrollWidth, doc.scrollWidth, doc.offsetWidth);
    const scrollHeight = Math.max(document.body.scrollHeight, doc.scrollHeight, doc.offsetHeight);
    if (scrollWidth > vw * 2) return 'HORIZONTAL_APP';
    const startY = window.scrollY;
    window.scrollBy(0, args.probe || 100);
    await sleep(150);
    const moved = Math.abs(window.scrollY - startY);
    window.scrollTo(0, 0);
    await sleep(100);
    const snapMarkers = !!q(sel('snapMarkers'));
    const fullScreen = qa('section, div').filter((el) => {
      const cs = style(el);
      return Math.abs(parseFloat(cs.height) - vh) < 20 && cs.display !== 'none';
    }).length;
    if ((moved < 70 && scrollHeight > vh + 200) || snapMarkers || fullScreen > 2) return 'VERTICAL_SNAP';
    return 'STANDARD';
  };

  const parseTranslateX = (t) => {
    if (!t || t === 'none') return 0;
    const m3 = t.match(/matrix3d\((.+)\)/);
    if (m3) { const v = m3[1].split(',').map((n) => parseFloat(n)); return isFinite(v[12]) ? v[12] : 0; }
    const m2 = t.match(/matrix\((.+)\)/);
    if (m2) { const v = m2[1].split(',').map((n) => parseFloat(n)); return isFinite(v[4]) ? v[4] : 0; }
    return 0;
  };

  const readTranslateX = () => {
    for (const s of list('translateTargets')) {
      const el = q(s);
      if (!el) continue;
      const t = style(el).transform;
      if (t && t !== 'none') return parseTranslateX(t);
    }
    return window.scrollX || 0;
  };

  const snapNext = () => {
    const sw = q(sel('swiper'));
    if (sw && sw.swiper) sw.swiper.slideNext();
    window.dispatchEvent(new WheelEvent('wheel', { deltaY: 800, bubbles: true }));
    return true;
  };

  const hideMain = () => {
    const main = q(sel('mainLayer'));
    if (main) main.style.visibility = 'hidden';
    qa(sel('finalHide')).forEach((el) => { el.style.visibility = 'hidden'; });
    return !!main;
  };

  const showMain = () => {
    const main = q(sel('mainLayer'));
    if (main) main.style.visibility = 'visible';
    return !!main;
  };

  // ------------------------------------------------------- isolated capture

  const refreshRect = (args) => {
    const pickBest = (start) => {
      let el = start;
      for (let i = 0; i < 8 && el; i++) {
        const tag = el.tagName.toLowerCase();
        if (tag === 'svg' || tag === 'button' || tag === 'a') return el;
        if (tag === 'div' || tag === 'span') {
          const r = el.getBoundingClientRect();
          if (r.width >= 6 && r.height >= 6 && r.width <= 600 && r.height <= 400) return el;
        }
        el = el.parentElement;
      }
      return start;
    };
    const isModalLayer = (el) => {
      const cs = style(el);
      const r = el.getBoundingClientRect();
      return (cs.position === 'fixed' || cs.position === 'sticky') && parseInt(cs.zIndex || '0', 10) >= 1000 &&
        r.width >= vw * 0.6 && r.height >= vh * 0.3;
    };
    const offsets = [[0, 0], [-8, 0], [8, 0], [0, -8], [0, 8], [-12, -12], [12, -12]];
    for (const [dx, dy] of offsets) {
      const hit = document.elementFromPoint(args.x + dx, args.y + dy);
      if (!hit) continue;
      const best = pickBest(hit);
      if (!best || isModalLayer(best)) continue;
      const r = best.getBoundingClientRect();
      if (r.width > 3 && r.height > 3) return rectOf(r);
    }
    return null;
  };

  const findCandidateTarget = (href, src, type) => {
    if (href && type !== 'icon-bg-image') {
      for (const a of qa('a')) {
        if (a.href !== href) continue;
        if (!src) return a;
        const img = a.querySelector('img');
        if (img && img.src.includes(src)) return a;
      }
    }
    if (src) {
      for (const el of qa('a, button, div')) {
        const bg = style(el).backgroundImage;
        if (bg && bg.includes(src)) return el;
      }
    }
    return null;
  };

  const firstSolid = (start) => {
    let el = start;
    while (el && el !== document.documentElement) {
      const hex = toHex(style(el).backgroundColor);
      if (hex) return hex;
      el = el.parentElement;
    }
    return null;
  };

  const candidateBackground = (args) => {
    const target = findCandidateTarget(args.href, args.src, args.type);
    if (!target) return { bg: '#FFFFFF', sticky: null, debug: 'no target found' };
    const bg = firstSolid(target) || toHex(style(document.body).backgroundColor) || '#FFFFFF';

    const stickyIds = words('stickyIds');
    const markers = sel('stickyMarkers');
    let anchor = null;
    for (let el = target; el && el !== document.documentElement; el = el.parentElement) {
      const cs = style(el);
      if (stickyIds.includes(el.id) || cs.position === 'sticky' || cs.position === 'fixed' || matches(el, markers)) {
        anchor = el;
        break;
      }
    }
    if (!anchor) return { bg, sticky: null, debug: 'no sticky ancestor' };

    const classes = words('stickyClasses');
    if (!classes.length || anchor.classList.contains(classes[0])) return { bg, sticky: null, debug: 'already sticky' };
    const before = classes.map((c) => anchor.classList.contains(c));
    const normal = firstSolid(target);
    classes.forEach((c) => anchor.classList.add(c));
    let stickyBg = null;
    let visible = false;
    try {
      const tcs = style(target);
      visible = tcs.display !== 'none' && tcs.visibility !== 'hidden' && tcs.opacity !== '0' && target.offsetWidth > 0;
      stickyBg = visible ? firstSolid(target) : null;
    } finally {
      classes.forEach((c, i) => { if (!before[i]) anchor.classList.remove(c); });
    }
    const debug = `normal=${normal} sticky=${stickyBg} visible=${visible}`;
    if (visible && normal && stickyBg && normal !== stickyBg) {
      return { bg, sticky: { normalBg: normal, stickyBg }, debug };
    }
    return { bg, sticky: null, debug };
  };

  const mountIsolated = (args) => {
    const old = document.getElementById(args.id);
    if (old) old.remove();
    const c = document.createElement('div');
    c.id = args.id;
    const pad = args.padding ? `padding:${args.padding}px;` : '';
    const size = args.width ? `width:${args.width}px;height:${args.height}px;` : '';
    c.style.cssText = `position:fixed;top:0;left:0;z-index:999999;${size}background:${args.background || '#fff'};` +
      `display:flex;align-items:center;justify-content:center;box-sizing:content-box;${pad}`;
    const filter = args.filter ? `filter:${args.filter};` : '';
    if (args.mode === 'background') {
      const inner = document.createElement('div');
      inner.style.cssText = `width:${args.renderWidth}px;height:${args.renderHeight}px;background-image:url('${args.src}');` +
        `background-size:contain;background-repeat:no-repeat;background-position:center;${filter}`;
      c.appendChild(inner);
    } else {
      const img = document.createElement('img');
      img.src = args.src;
      const dims = args.fit === 'max'
        ? `max-width:${args.renderWidth}px;max-height:${args.renderHeight}px;`
        : `width:${args.renderWidth}px;height:${args.renderHeight}px;`;
      img.style.cssText = `${dims}object-fit:contain;display:block;opacity:1;visibility:visible;${filter}`;
      c.appendChild(img);
    }
    document.body.appendChild(c);
    const r = c.getBoundingClientRect();
    return { width: Math.round(r.width), height: Math.round(r.height) };
  };

  const isolatedReady = (args) => {
    const c = document.getElementById(args.id);
    const img = c && c.querySelector('img');
    if (!img) return !!c;
    if (!img.complete || img.naturalWidth === 0) {
      const s = img.src;
      img.src = '';
      img.src = s;
    }
    return !!(img.complete && img.naturalWidth > 0);
  };

  const unmountIsolated = (args) => {
    const el = document.getElementById(args.id);
    if (el) el.remove();
    return true;
  };

  const findLogo = () => {
    const partners = sel('partnerLists');
    for (const s of list('logoImages')) {
      const el = q(s);
      if (!el || within(el, partners)) continue;
      if (isHiddenStyle(style(el))) continue;
      const r = el.getBoundingClientRect();
      if (r.width > 10 && r.height > 10) return Object.assign({ kind: 'img', src: el.src || '' }, rectOf(r));
    }
    const header = q('header');
    if (header && isHiddenStyle(style(header))) {
      header.style.setProperty('opacity', '1', 'important');
      header.style.setProperty('display', 'block', 'important');
      header.style.setProperty('visibility', 'visible', 'important');
    }
    for (const s of list('logoSvgs')) {
      const el = q(s);
      if (!el || within(el, partners)) continue;
      const holder = el.closest('.logo, header');
      if (holder) {
        holder.style.setProperty('opacity', '1', 'important');
        holder.style.setProperty('visibility', 'visible', 'important');
      }
      const r = el.getBoundingClientRect();
      if (r.width > 10 && r.height > 10) {
        const markup = new XMLSerializer().serializeToString(el);
        const src = 'data:image/svg+xml;base64,' + btoa(unescape(encodeURIComponent(markup)));
        return Object.assign({ kind: 'svg', src, fill: svgFill(el) || '' }, rectOf(r));
      }
    }
    for (const s of list('logoBackgrounds')) {
      const el = q(s);
      if (!el || within(el, partners)) continue;
      const cs = style(el);
      if (cs.display === 'none' || cs.opacity === '0') continue;
      const r = el.getBoundingClientRect();
      if (r.width < 10 || r.height < 10 || el.querySelector('img, svg')) continue;
      if (hasUrlBg(cs)) {
        return Object.assign({ kind: 'css-bg', src: urlOf(cs.backgroundImage),
          filter: cs.filter && cs.filter !== 'none' ? cs.filter : '' }, rectOf(r));
      }
      if (r.width < 400 && r.height < 300) return Object.assign({ kind: 'text-logo', src: '', selector: s }, rectOf(r));
    }
    return null;
  };

  const cloneTextLogo = (args) => {
    const old = document.getElementById(args.id);
    if (old) old.remove();
    const el = q(args.selector);
    if (!el) return null;
    const cs = style(el);
    const clone = el.cloneNode(true);
    clone.style.cssText = `display:${cs.display};width:${cs.width};height:${cs.height};visibility:visible !important;` +
      `background-image:${cs.backgroundImage};background-size:${cs.backgroundSize};` +
      `background-repeat:${cs.backgroundRepeat};background-position:${cs.backgroundPosition};` +
      `font-family:${cs.fontFamily};font-size:${cs.fontSize};color:${cs.color};text-indent:${cs.textIndent};` +
      `overflow:${cs.overflow};line-height:${cs.lineHeight};`;
    const c = document.createElement('div');
    c.id = args.id;
    c.style.cssText = 'position:fixed;top:0;left:0;z-index:999999;padding:6px;background:#fff;';
    c.appendChild(clone);
    document.body.appendChild(c);
    const r = c.getBoundingClientRect();
    return { width: Math.round(r.width), height: Math.round(r.height) };
  };

  const contentImages = (args) => {
    const excludes = words('contentImageExcludes');
    const skip = sel('contentImageSkip');
    const seenSrc = new Set();
    const out = [];
    for (const img of qa('img')) {
      const cs = style(img);
      if (cs.display === 'none' || cs.visibility === 'hidden') continue;
      const nw = img.naturalWidth || 0, nh = img.naturalHeight || 0;
      if (nw < 50 || nh < 50) continue;
      const src = (img.currentSrc || img.src || '').trim();
      if (!src || excludes.some((w) => src.toLowerCase().includes(w))) continue;
      if (within(img, skip) || seenSrc.has(src)) continue;
      seenSrc.add(src);
      out.push({ src, alt: img.alt || '', naturalWidth: nw, naturalHeight: nh, area: nw * nh });
    }
    out.sort((a, b) => b.area - a.area);
    return out.slice(0, args.limit || 10);
  };

  const hideConsent = () => {
    let hidden = 0;
    qa(sel('consentHide')).forEach((el) => {
      if (el.dataset.csHidden === '1') return;
      el.dataset.csHidden = '1';
      el.dataset.csPrev = JSON.stringify([el.style.display || '', el.style.visibility || '', el.style.opacity || '']);
      el.style.setProperty('display', 'none', 'important');
      el.style.setProperty('visibility', 'hidden', 'important');
      el.style.setProperty('opacity', '0', 'important');
      hidden++;
    });
    return hidden;
  };

  const restoreConsent = () => {
    let restored = 0;
    qa('[data-cs-hidden="1"]').forEach((el) => {
      const prev = JSON.parse(el.dataset.csPrev || '["","",""]');
      el.style.display = prev[0];
      el.style.visibility = prev[1];
      el.style.opacity = prev[2];
      delete el.dataset.csHidden;
      delete el.dataset.csPrev;
      restored++;
    });
    return restored;
  };

  const handlers = {
    scanChunk, detectStrategy, dismissOverlays, cleanup, forceRender,
    scrollTo: (args) => { window.scrollTo(args.x || 0, args.y || 0); return true; },
    scrollBy: (args) => { window.scrollBy(0, args.dy || 0); return true; },
    isAtEnd: (args) => window.innerHeight + window.scrollY >= document.body.scrollHeight - (args.margin || 50),
    readTranslateX, snapNext, hideMain, showMain, refreshRect, candidateBackground,
    mountIsolated, isolatedReady, unmountIsolated, findLogo, cloneTextLogo, contentImages,
    hideConsent, restoreConsent,
  };

  window.__contrastScan = {
    version: VERSION,
    configured: false,
    configure: (rules) => { R = rules || R; window.__contrastScan.configured = true; return true; },
    call: async (fn, args) => {
      const handler = handlers[fn];
      if (!handler) return { ok: false, error: `unknown function ${fn}` };
      vw = window.innerWidth;
      vh = window.innerHeight;
      try {
        return { ok: true, result: await handler(args || {}) };
      } catch (e) {
        return { ok: false, error: String((e && e.message) || e) };
      }
    },
  };
  return VERSION;
})()
""".replace("__VERSION__", PAGE_SCRIPT_VERSION)

DISPATCH = """async (req) => {
    const api = window.__contrastScan;
    if (!api || api.version !== req.version || !api.configured) return { ok: false, missing: true };
    return await api.call(req.fn, req.args);
}"""

CONFIGURE = "(rules) => window.__contrastScan.configure(rules)"


class PageBridge:
    """Calls page-side functions by id; any failure degrades to ``None``."""

    def __init__(self, page, rules: Optional[SiteRules] = None):
        self.page = page
        self.rules = rules or SiteRules()
        self.failures: Dict[str, int] = {}

    async def install(self) -> bool:
        try:
            version = await self.page.evaluate(PAGE_SCRIPT)
            await self.page.evaluate(CONFIGURE, self.rules.to_payload())
        except Exception as exc:
            logger.debug("page script install failed: %s", exc)
            return False
        return version == PAGE_SCRIPT_VERSION

    async def call(self, fn_id: str, **args: Any) -> Any:
        if fn_id not in FUNCTION_IDS:
            raise ValueError(f"Unknown page function: {fn_id}")
        request = {"fn": fn_id, "args": args, "version": PAGE_SCRIPT_VERSION}
        for _ in range(2):
            try:
                if self.page.is_closed():
                    return None
                response = await self.page.evaluate(DISPATCH, request)
            except Exception as exc:
                self._record_failure(fn_id, exc)
                return None
            if isinstance(response, dict) and response.get("missing"):
                # navigation wiped the window object; reinstall once
                if not await self.install():
                    break
                continue
            if not isinstance(response, dict) or not response.get("ok"):
                error = response.get("error") if isinstance(response, dict) else response
                self._record_failure(fn_id, error)
                return None
            return response.get("result")
        return None

    def _record_failure(self, fn_id: str, error: Any) -> None:
        self.failures[fn_id] = self.failures.get(fn_id, 0) + 1
        logger.debug("page call %s failed: %s", fn_id, error)
