"""
Reassembly: put translated fragments back into the tagged chapter tree
"""
import copy
from typing import Callable, Dict, Iterable, Optional

from lxml import etree
from tqdm.auto import tqdm

from inktranslate.config import TRANSLATE_ID_ATTRIBUTE
from inktranslate.exceptions import ReassemblyCorruption
from .markup import (
    escape_bare_ampersands, has_xml_declaration, local_name, normalize_html_entities,
    parse_markup, serialize_document
)
from .models import TranslationResult


FRAGMENT_WRAPPER_TAG = "inktranslate-fragment"


def _parse_fragment(fragment, element):
    """
    Parse translated inner markup in the namespace context of its target element

    Args:
        fragment: Translated inner markup returned by the service
        element: lxml element the fragment will be placed into

    Returns:
        Wrapper element holding the parsed content

    Raises:
        ReassemblyCorruption: If the fragment is not well-formed
    """
    if not isinstance(fragment, str):
        raise ReassemblyCorruption("Translated fragment is not text", details=type(fragment).__name__)

    ns_declarations = []
    for prefix, uri in element.nsmap.items():
        if prefix is None:
            ns_declarations.append(f'xmlns="{uri}"')
        else:
            ns_declarations.append(f'xmlns:{prefix}="{uri}"')
    open_tag = " ".join([FRAGMENT_WRAPPER_TAG] + ns_declarations)
    wrapped = f"<{open_tag}>{escape_bare_ampersands(normalize_html_entities(fragment))}</{FRAGMENT_WRAPPER_TAG}>"

    parser = etree.XMLParser(recover=False, resolve_entities=False)
    try:
        wrapper = etree.fromstring(wrapped.encode('utf-8'), parser)
    except etree.XMLSyntaxError as e:
        raise ReassemblyCorruption("Translated fragment is not well-formed", details=str(e)) from e

    # Some responses echo the unit wrapper itself: <p id="tid-...">...</p>
    unit_id = element.get(TRANSLATE_ID_ATTRIBUTE)
    if (len(wrapper) == 1 and not (wrapper.text or "").strip()
            and not (wrapper[0].tail or "").strip()
            and local_name(wrapper[0]) == local_name(element)
            and wrapper[0].get('id') == unit_id):
        wrapper = wrapper[0]
    return wrapper


def _replace_inner_content(element, text, children):
    for child in list(element):
        element.remove(child)
    element.text = text
    for child in children:
        element.append(child)


def _apply_translation(element, fragment):
    """
    Substitute the inner content of element, rolling back on failure

    Raises:
        ReassemblyCorruption: If the fragment could not be applied; the element
        is left with its original content
    """
    original_text = element.text
    original_children = [copy.deepcopy(child) for child in element]
    try:
        source = _parse_fragment(fragment, element)
        _replace_inner_content(element, source.text, list(source))
        etree.tostring(element)
    except ReassemblyCorruption:
        _replace_inner_content(element, original_text, original_children)
        raise
    except (etree.LxmlError, ValueError, TypeError) as e:
        _replace_inner_content(element, original_text, original_children)
        raise ReassemblyCorruption("Translated node could not be serialized", details=str(e)) from e


def reassemble(tagged_markup: str, results: Iterable[TranslationResult],
               log_callback: Optional[Callable] = None) -> str:
    """
    Inject translations into the tagged chapter and strip the temporary ids

    Args:
        tagged_markup: Chapter markup as produced by the segmenter
        results: Translation results, in any order
        log_callback: Logging callback

    Returns:
        str: Final chapter markup. Units without a (usable) translation keep
        their original content.
    """
    translations: Dict[str, str] = {result.id: result.translated_markup for result in results}

    root = parse_markup(tagged_markup)
    tagged_elements = root.xpath(f'//*[@{TRANSLATE_ID_ATTRIBUTE}]')

    applied_count = 0
    reverted_count = 0
    for element in tagged_elements:
        unit_id = element.get(TRANSLATE_ID_ATTRIBUTE)
        if unit_id in translations:
            try:
                _apply_translation(element, translations[unit_id])
                applied_count += 1
            except ReassemblyCorruption as e:
                reverted_count += 1
                warn_msg = f"WARNING: Translation for unit {unit_id} kept untranslated: {e}"
                if log_callback:
                    log_callback("reassembly_unit_reverted", warn_msg)
                else:
                    tqdm.write(warn_msg)
        del element.attrib[TRANSLATE_ID_ATTRIBUTE]

    # Translated fragments may carry the marker too
    for element in root.xpath(f'//*[@{TRANSLATE_ID_ATTRIBUTE}]'):
        del element.attrib[TRANSLATE_ID_ATTRIBUTE]

    if log_callback:
        untranslated_count = len(tagged_elements) - applied_count
        log_callback("reassembly_done",
                     f"{applied_count}/{len(tagged_elements)} units translated, "
                     f"{untranslated_count} left in source language ({reverted_count} reverted).")

    return serialize_document(root, xml_declaration=has_xml_declaration(tagged_markup))
