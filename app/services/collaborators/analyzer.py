from typing import List, Dict, Any, Optional
from pathlib import Path
import asyncio
import logging
import re

from .base import RepositoryAnalyzer

logger = logging.getLogger(__name__)


LANGUAGE_MAP = {
    '.js': 'javascript', '.jsx': 'javascript',
    '.ts': 'typescript', '.tsx': 'typescript',
    '.py': 'python', '.java': 'java', '.go': 'go', '.rs': 'rust',
    '.cpp': 'cpp', '.c': 'c', '.h': 'c', '.hpp': 'cpp', '.cs': 'csharp',
    '.php': 'php', '.rb': 'ruby', '.swift': 'swift', '.kt': 'kotlin',
    '.md': 'markdown', '.json': 'json', '.xml': 'xml', '.yaml': 'yaml',
    '.yml': 'yaml', '.toml': 'toml', '.html': 'html', '.css': 'css',
    '.scss': 'scss', '.sql': 'sql', '.sh': 'shell',
}

SKIP_DIRS = {
    '.git', 'node_modules', 'dist', 'build', '.next', '.vscode', '.idea',
    'coverage', '__pycache__', 'venv', '.venv',
}

JS_FUNCTION_RE = re.compile(
    r'(?:function\s+(\w+)|(\w+)\s*[:=]\s*(?:async\s*)?function|(\w+)\s*[:=]\s*(?:async\s*)?\([^)]*\)\s*=>)'
)
JS_CLASS_RE = re.compile(r'class\s+(\w+)')
PY_FUNCTION_RE = re.compile(r'^\s*(?:async\s+)?def\s+(\w+)', re.MULTILINE)
PY_CLASS_RE = re.compile(r'^\s*class\s+(\w+)', re.MULTILINE)


def _unique(names) -> List[str]:
    seen = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


def extract_symbols(content: str, language: str) -> Dict[str, List[str]]:
    """Best-effort function/class names for the languages we understand"""
    if language in ('javascript', 'typescript'):
        functions = _unique(next((g for g in m if g), None) for m in JS_FUNCTION_RE.findall(content))
        classes = _unique(JS_CLASS_RE.findall(content))
    elif language == 'python':
        functions = _unique(PY_FUNCTION_RE.findall(content))
        classes = _unique(PY_CLASS_RE.findall(content))
    else:
        functions, classes = [], []
    return {'functions': functions, 'classes': classes}


def build_structure(files: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Nest a flat file list into a directory tree"""
    structure: Dict[str, Any] = {}
    for file in files:
        parts = file['path'].split('/')
        level = structure
        for part in parts[:-1]:
            node = level.get(part)
            if node is None or node['type'] != 'directory':
                node = {'type': 'directory', 'children': {}}
                level[part] = node
            level = node['children']
        level[parts[-1]] = {
            'type': 'file',
            'path': file['path'],
            'language': file['language'],
            'size': file['size'],
        }
    return structure


def count_directories(structure: Dict[str, Any]) -> int:
    count = 0
    for node in structure.values():
        if node['type'] == 'directory':
            count += 1 + count_directories(node['children'])
    return count


class FileSystemAnalyzer(RepositoryAnalyzer):
    """Walk a working tree and summarize every readable source file"""

    def __init__(self, max_file_size: int = 1024 * 1024):
        super().__init__("FileSystemAnalyzer")
        self.max_file_size = max_file_size

    async def analyze(self, path: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._analyze_sync, path)

    def _analyze_sync(self, path: str) -> Dict[str, Any]:
        root = Path(path)
        if not root.is_dir():
            raise ValueError(f"Working tree not found: {path}")
        resolved_root = root.resolve()

        files: List[Dict[str, Any]] = []
        readme: Optional[Dict[str, Any]] = None
        skipped = 0

        for file_path in sorted(root.rglob('*')):
            rel_parts = file_path.relative_to(root).parts
            if any(part in SKIP_DIRS for part in rel_parts[:-1]):
                continue
            # Links may point outside the working tree
            if file_path.is_symlink() or not file_path.resolve().is_relative_to(resolved_root):
                logger.debug(f"Skipping link {file_path}")
                continue
            if not file_path.is_file():
                continue

            size = file_path.stat().st_size
            if size > self.max_file_size:
                logger.debug(f"Skipping large file {file_path}: {size} bytes")
                skipped += 1
                continue

            try:
                content = file_path.read_text(encoding='utf-8')
            except (UnicodeDecodeError, OSError) as e:
                # Binary or unreadable; still listed, just not parsed
                logger.debug(f"Could not read {file_path}: {e}")
                content = None

            suffix = file_path.suffix.lower()
            language = LANGUAGE_MAP.get(suffix, 'text')
            rel_path = '/'.join(rel_parts)
            info = {
                'path': rel_path,
                'size': size,
                'language': language,
                **extract_symbols(content or '', language),
            }
            files.append(info)

            if (readme is None and content is not None
                    and 'readme' in file_path.name.lower() and suffix in ('.md', '.txt')):
                readme = {'path': rel_path, 'content': content}

        structure = build_structure(files)
        languages: Dict[str, int] = {}
        file_types: Dict[str, int] = {}
        for info in files:
            languages[info['language']] = languages.get(info['language'], 0) + 1
            ext = Path(info['path']).suffix.lower()
            if ext:
                file_types[ext] = file_types.get(ext, 0) + 1

        summary = {
            'totalFiles': len(files),
            'totalDirectories': count_directories(structure),
            'totalSize': sum(info['size'] for info in files),
            'languages': languages,
            'fileTypes': file_types,
            'hasReadme': readme is not None,
        }
        logger.info(f"Analyzed {len(files)} files in {path} (skipped: {skipped})")
        return {'files': files, 'structure': structure, 'summary': summary, 'readme': readme}
