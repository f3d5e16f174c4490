"""Utility functions for code generation."""
import re

from apiforge.domain.bundle import FileKind


def to_snake_case(name: str) -> str:
    """Convert PascalCase or camelCase to snake_case."""
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1)
    return re.sub(r'[\s\-]+', '_', s2).lower()


def to_kebab_case(name: str) -> str:
    """Convert PascalCase or camelCase to kebab-case."""
    return to_snake_case(name).replace('_', '-')


def to_camel_case(name: str) -> str:
    parts = to_snake_case(name).split('_')
    return parts[0] + ''.join(p.title() for p in parts[1:])


def to_pascal_case(name: str) -> str:
    return ''.join(p.title() for p in to_snake_case(name).split('_'))


def pluralize(word: str) -> str:
    """Naive English plural, enough for collection and route names."""
    if word.endswith(('s', 'x', 'z', 'ch', 'sh')):
        return word + 'es'
    elif word.endswith('y') and len(word) > 1 and word[-2] not in 'aeiou':
        return word[:-1] + 'ies'
    else:
        return word + 's'


def to_plural_snake_case(name: str) -> str:
    """Convert entity name to plural snake_case for tables and collections."""
    return pluralize(to_snake_case(name))


def to_plural_kebab_case(name: str) -> str:
    """Convert entity name to plural kebab-case for URL paths."""
    return pluralize(to_kebab_case(name))


def project_slug(name: str) -> str:
    """Lower-case name with every character outside [a-z0-9] replaced by '-'."""
    return re.sub(r'[^a-z0-9]', '-', name.lower())


_LANGUAGES = {
    '.js': 'javascript',
    '.ts': 'typescript',
    '.py': 'python',
    '.json': 'json',
    '.md': 'markdown',
    '.yml': 'yaml',
    '.yaml': 'yaml',
    '.html': 'html',
    '.css': 'css',
    '.java': 'java',
    '.toml': 'toml',
}


def language_for_path(path: str) -> str:
    if path.rsplit('/', 1)[-1] == 'Dockerfile':
        return 'dockerfile'
    for ext, language in _LANGUAGES.items():
        if path.endswith(ext):
            return language
    return 'plaintext'


_CONFIG_SUFFIXES = ('.json', '.env', '.example', '.yml', '.yaml', '.toml', '.ini', '.txt', '.cfg')
_CONFIG_NAMES = {'Dockerfile', '.gitignore', '.dockerignore', 'tsconfig.json', 'nest-cli.json'}


def kind_for_path(path: str) -> FileKind:
    name = path.rsplit('/', 1)[-1]
    if path.endswith('.md') or path.startswith('docs/'):
        return FileKind.DOC
    if name in _CONFIG_NAMES or path.endswith(_CONFIG_SUFFIXES) or path.startswith('config/'):
        return FileKind.CONFIG
    return FileKind.CODE
