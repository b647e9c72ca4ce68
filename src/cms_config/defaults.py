"""Default filling for validated configuration documents.

apply_defaults() never mutates its argument; it returns a new document with
derived values filled in and per-language fields expanded.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .tree import deep_merge, get_in, set_in

PUBLISH_MODE_SIMPLE = 'simple'
PUBLISH_MODE_EDITORIAL_WORKFLOW = 'editorial_workflow'

DEFAULTS = {
    'publish_mode': PUBLISH_MODE_SIMPLE,
}

SLUG_DEFAULTS = {
    'encoding': 'unicode',
    'clean_accents': False,
    'sanitize_replacement': '-',
}

# Candidate identifier fields when a collection sets no identifier_field
IDENTIFIER_FIELDS = ('title', 'path')

# Never expanded per language
BODY_FIELD = 'body'


def select_identifier(collection: Mapping[str, Any]) -> Optional[str]:
    """Name of the field that identifies entries of ``collection``.

    The collection's ``identifier_field`` is preferred, then ``title`` and
    ``path``; the first candidate present among the field names
    (case-insensitive, trimmed) wins.
    """
    identifier = collection.get('identifier_field')
    candidates = [identifier, *IDENTIFIER_FIELDS] if identifier else list(IDENTIFIER_FIELDS)
    names = [f.get('name', '') for f in collection.get('fields') or []]
    normalized = {str(name).lower().strip(): name for name in names}
    for candidate in candidates:
        match = normalized.get(candidate.lower().strip())
        if match is not None:
            return match
    return None


def add_language_fields(
    fields: Sequence[Mapping[str, Any]],
    languages: Sequence[str],
    identifier: Optional[str],
) -> List[Dict[str, Any]]:
    """Replace every translatable field by an object field with one child per language.

    The identifier field and the body field are never expanded.

    Example:
        >>> add_language_fields([{'name': 'title', 'translate': True}], ['en'], 'slug')
        [{'name': 'title', 'widget': 'object', 'fields': [{'name': 'en', 'label': 'EN'}]}]
    """
    result = []
    for item in fields:
        name = item.get('name')
        if item.get('translate') and name != identifier and name != BODY_FIELD:
            base = {k: v for k, v in item.items() if k != 'translate'}
            lang_fields = [
                {**copy.deepcopy(base), 'label': lang.upper(), 'name': lang}
                for lang in languages
            ]
            result.append({**base, 'widget': 'object', 'fields': lang_fields})
        else:
            result.append(dict(item))
    return result


def _collection_defaults(collection: Mapping[str, Any], languages: Optional[Sequence[str]]) -> dict:
    collection = dict(collection)

    folder = collection.get('folder')
    if folder:
        if 'path' in collection and 'media_folder' not in collection:
            collection['media_folder'] = ''

        fields = collection.get('fields')
        if languages and fields:
            collection['fields'] = add_language_fields(
                fields, languages, select_identifier(collection)
            )

        collection['folder'] = folder.lstrip('/')
        return collection

    files = collection.get('files')
    if files:
        collection['files'] = [
            {**file, 'file': str(file.get('file', '')).lstrip('/')} for file in files
        ]
    return collection


def apply_defaults(config: Mapping[str, Any]) -> dict:
    """Fill derived and default values into a validated configuration.

    - ``publish_mode`` defaults to ``simple``
    - ``display_url`` defaults to ``site_url``
    - ``public_folder`` defaults to ``/`` + ``media_folder``
    - ``slug`` sub-keys get their defaults
    - folder collections lose leading slashes, get an empty ``media_folder``
      when they declare ``path`` without one, and have translatable fields
      expanded when ``languages`` is configured
    - files collections lose leading slashes on every ``file``

    Returns:
        A new configuration dict
    """
    result = deep_merge(DEFAULTS, config)

    if not result.get('display_url') and result.get('site_url'):
        result['display_url'] = result['site_url']

    if not result.get('public_folder') and result.get('media_folder') is not None:
        result['public_folder'] = '/' + str(result['media_folder']).lstrip('/')

    for key, value in SLUG_DEFAULTS.items():
        if not get_in(result, ['slug', key]):
            result = set_in(result, ['slug', key], value)

    languages = result.get('languages')
    result['collections'] = [
        _collection_defaults(collection, languages)
        for collection in result.get('collections') or []
    ]
    return result
