"""Configuration schema checks.

validate_config() inspects a merged configuration document and raises a
ConfigValidationError naming the offending path (e.g.
``collections[1].fields[0].name``) on the first violation. Nothing is
coerced: a document either passes unchanged or fails.

Configuration structure:
    backend:
      name: gitlab
      repo: owner/site
    media_folder: static/uploads
    collections:
      - name: posts
        label: Posts
        folder: content/posts
        fields:
          - {name: title, widget: string, translate: true}
      - name: pages
        label: Pages
        files:
          - {name: about, label: About, file: content/about.md, fields: [...]}
"""

from typing import Any, Mapping, Optional

from .errors import ConfigValidationError

PUBLISH_MODES = {'', 'simple', 'editorial_workflow'}
SLUG_ENCODINGS = {'unicode', 'ascii'}

# Top-level keys that must be strings when present
STRING_FIELDS = ('site_url', 'display_url', 'logo_url', 'locale',
                 'media_folder', 'public_folder')


def validate_config(config: Any) -> None:
    """Validate a configuration document.

    Args:
        config: Merged configuration document

    Raises:
        ConfigValidationError: On the first schema violation
    """
    if not isinstance(config, Mapping):
        raise ConfigValidationError(
            f"Configuration must be a mapping, got {type(config).__name__}"
        )

    _validate_backend(config.get('backend'))

    for key in STRING_FIELDS:
        if key in config and not isinstance(config[key], str):
            raise ConfigValidationError(
                f"Field '{key}' must be a string, got {type(config[key]).__name__}",
                key
            )

    if 'media_folder' not in config and 'media_library' not in config:
        raise ConfigValidationError(
            "Either 'media_folder' or 'media_library' is required"
        )
    if 'media_library' in config:
        _require_named_mapping(config['media_library'], 'media_library')

    publish_mode = config.get('publish_mode')
    if publish_mode is not None and publish_mode not in PUBLISH_MODES:
        raise ConfigValidationError(
            f"Field 'publish_mode' must be one of {sorted(m for m in PUBLISH_MODES if m)}, "
            f"got {publish_mode!r}",
            'publish_mode'
        )

    if 'load_config_file' in config and not isinstance(config['load_config_file'], bool):
        raise ConfigValidationError(
            "Field 'load_config_file' must be a boolean",
            'load_config_file'
        )

    _validate_slug(config.get('slug'))
    _validate_languages(config.get('languages'))
    _validate_collections(config.get('collections'))


def _require_named_mapping(value: Any, path: str) -> None:
    if not isinstance(value, Mapping):
        raise ConfigValidationError(
            f"Field '{path}' must be a mapping, got {type(value).__name__}",
            path
        )
    name = value.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ConfigValidationError(
            "Field 'name' is required and cannot be empty",
            f'{path}.name'
        )


def _validate_backend(backend: Any) -> None:
    if backend is None:
        raise ConfigValidationError("Missing required fields: backend")
    _require_named_mapping(backend, 'backend')
    for key in ('repo', 'branch', 'api_root'):
        if key in backend and not isinstance(backend[key], str):
            raise ConfigValidationError(
                f"Field '{key}' must be a string",
                f'backend.{key}'
            )


def _validate_slug(slug: Any) -> None:
    if slug is None:
        return
    if not isinstance(slug, Mapping):
        raise ConfigValidationError("Field 'slug' must be a mapping", 'slug')
    encoding = slug.get('encoding')
    if encoding is not None and encoding not in SLUG_ENCODINGS:
        raise ConfigValidationError(
            f"Field 'encoding' must be one of {sorted(SLUG_ENCODINGS)}, got {encoding!r}",
            'slug.encoding'
        )
    if 'clean_accents' in slug and not isinstance(slug['clean_accents'], bool):
        raise ConfigValidationError(
            "Field 'clean_accents' must be a boolean",
            'slug.clean_accents'
        )
    replacement = slug.get('sanitize_replacement')
    if replacement is not None and not isinstance(replacement, str):
        raise ConfigValidationError(
            "Field 'sanitize_replacement' must be a string",
            'slug.sanitize_replacement'
        )


def _validate_languages(languages: Any) -> None:
    if languages is None:
        return
    if not isinstance(languages, list):
        raise ConfigValidationError("Field 'languages' must be a list", 'languages')
    for i, lang in enumerate(languages):
        if not isinstance(lang, str) or not lang.strip():
            raise ConfigValidationError(
                "Language codes must be non-empty strings",
                f'languages[{i}]'
            )


def _validate_fields(fields: Any, path: str, required: bool) -> None:
    if fields is None:
        if required:
            raise ConfigValidationError("Field 'fields' is required", path)
        return
    if not isinstance(fields, list):
        raise ConfigValidationError("Field 'fields' must be a list", path)

    for i, item in enumerate(fields):
        item_path = f'{path}[{i}]'
        if not isinstance(item, Mapping):
            raise ConfigValidationError(
                f"Field at index {i} must be a mapping",
                item_path
            )
        name = item.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ConfigValidationError(
                "Field 'name' is required and cannot be empty",
                f'{item_path}.name'
            )
        if 'widget' in item and not isinstance(item['widget'], str):
            raise ConfigValidationError(
                "Field 'widget' must be a string",
                f'{item_path}.widget'
            )
        if 'translate' in item and not isinstance(item['translate'], bool):
            raise ConfigValidationError(
                "Field 'translate' must be a boolean",
                f'{item_path}.translate'
            )
        _validate_fields(item.get('fields'), f'{item_path}.fields', required=False)


def _validate_files(files: Any, path: str) -> None:
    if not isinstance(files, list) or not files:
        raise ConfigValidationError("Field 'files' must be a non-empty list", path)
    for i, item in enumerate(files):
        item_path = f'{path}[{i}]'
        if not isinstance(item, Mapping):
            raise ConfigValidationError(
                f"File at index {i} must be a mapping",
                item_path
            )
        for key in ('name', 'file'):
            value = item.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigValidationError(
                    f"Field '{key}' is required and cannot be empty",
                    f'{item_path}.{key}'
                )
        _validate_fields(item.get('fields'), f'{item_path}.fields', required=True)


def _validate_collection(collection: Any, path: str) -> Optional[str]:
    if not isinstance(collection, Mapping):
        raise ConfigValidationError(
            f"Collection must be a mapping, got {type(collection).__name__}",
            path
        )

    missing = {'name', 'label'} - set(collection.keys())
    if missing:
        raise ConfigValidationError(
            f"Missing required fields: {', '.join(sorted(missing))}",
            path
        )
    name = collection['name']
    if not isinstance(name, str) or not name.strip():
        raise ConfigValidationError("Field 'name' cannot be empty", f'{path}.name')

    has_folder = 'folder' in collection
    has_files = 'files' in collection
    if has_folder == has_files:
        raise ConfigValidationError(
            "Exactly one of 'folder' or 'files' must be set",
            path
        )

    if has_folder:
        if not isinstance(collection['folder'], str):
            raise ConfigValidationError("Field 'folder' must be a string", f'{path}.folder')
        _validate_fields(collection.get('fields'), f'{path}.fields', required=True)
    else:
        _validate_files(collection['files'], f'{path}.files')

    for key in ('identifier_field', 'extension', 'media_folder', 'path'):
        if key in collection and not isinstance(collection[key], str):
            raise ConfigValidationError(
                f"Field '{key}' must be a string",
                f'{path}.{key}'
            )
    return name


def _validate_collections(collections: Any) -> None:
    if collections is None:
        raise ConfigValidationError("Missing required fields: collections")
    if not isinstance(collections, list):
        raise ConfigValidationError("Field 'collections' must be a list", 'collections')
    if not collections:
        raise ConfigValidationError(
            "At least one collection is required",
            'collections'
        )

    seen = set()
    for i, collection in enumerate(collections):
        name = _validate_collection(collection, f'collections[{i}]')
        if name in seen:
            raise ConfigValidationError(
                f"Duplicate collection name '{name}'",
                f'collections[{i}].name'
            )
        seen.add(name)
