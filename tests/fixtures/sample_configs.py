"""Sample configuration documents for testing.

SAMPLE_CONFIG_YAML is what a site would serve as config.yml; SAMPLE_CONFIG
is the same document already parsed.
"""

import copy

SAMPLE_CONFIG_YAML = """
backend:
  name: test-repo
media_folder: static/uploads
site_url: https://example.com
collections:
  - name: posts
    label: Posts
    folder: /content/posts
    identifier_field: slug
    fields:
      - {name: slug, widget: string}
      - {name: title, widget: string, translate: true}
      - {name: body, widget: markdown, translate: true}
  - name: pages
    label: Pages
    files:
      - name: about
        label: About
        file: /content/about.md
        fields:
          - {name: title, widget: string}
"""

SAMPLE_CONFIG = {
    'backend': {'name': 'test-repo'},
    'media_folder': 'static/uploads',
    'site_url': 'https://example.com',
    'collections': [
        {
            'name': 'posts',
            'label': 'Posts',
            'folder': '/content/posts',
            'identifier_field': 'slug',
            'fields': [
                {'name': 'slug', 'widget': 'string'},
                {'name': 'title', 'widget': 'string', 'translate': True},
                {'name': 'body', 'widget': 'markdown', 'translate': True},
            ],
        },
        {
            'name': 'pages',
            'label': 'Pages',
            'files': [
                {
                    'name': 'about',
                    'label': 'About',
                    'file': '/content/about.md',
                    'fields': [{'name': 'title', 'widget': 'string'}],
                },
            ],
        },
    ],
}

# Host page declaring a custom configuration location
SAMPLE_ADMIN_HTML = """
<!doctype html>
<html>
<head>
  <link href="https://cdn.example.com/styles.css" rel="stylesheet">
  <link href="/admin/site-config.yml" type="text/yaml" rel="cms-config-url">
</head>
<body></body>
</html>
"""


def get_sample_config() -> dict:
    """Fresh deep copy of SAMPLE_CONFIG, safe to modify in a test."""
    return copy.deepcopy(SAMPLE_CONFIG)


def get_gitlab_config(**backend_overrides) -> dict:
    """SAMPLE_CONFIG pointed at a GitLab project."""
    config = get_sample_config()
    config['backend'] = {'name': 'gitlab', 'repo': 'acme/site', 'branch': 'main'}
    config['backend'].update(backend_overrides)
    return config
