from typing import Dict, Any, Optional
import asyncio
import logging

from openai import OpenAI

from .base import DocumentationGenerator

logger = logging.getLogger(__name__)


README_MODES = {
    'v1': {
        'name': 'Comprehensive',
        'description': 'Detailed documentation with full API reference, architecture notes, and comprehensive guides',
        'features': [
            'Full API documentation',
            'Architecture overview',
            'Detailed installation guides',
            'Usage examples',
            'Contributing guidelines',
        ],
        'recommendedFor': 'Enterprise projects, open source libraries, complex systems',
    },
    'v2': {
        'name': 'Beginner-Friendly',
        'description': 'Simple, clear documentation focused on getting started quickly',
        'features': [
            'Quick start guide',
            'Basic usage examples',
            'Simple installation steps',
            'Clear project overview',
        ],
        'recommendedFor': 'Simple projects, demos, learning projects, quick documentation',
    },
}

MODE_ALIASES = {'1': 'v1', '2': 'v2'}


def normalize_mode(mode: Optional[str], default: str = 'v2') -> str:
    """Map '1'/'2' onto 'v1'/'v2'; raise ValueError for anything unknown"""
    if mode is None or mode == '':
        return default
    normalized = MODE_ALIASES.get(str(mode), str(mode))
    if normalized not in README_MODES:
        raise ValueError(
            'Invalid mode. Use "v1" (or "1") for comprehensive or "v2" (or "2") for beginner-friendly.'
        )
    return normalized


class ReadmeGenerator(DocumentationGenerator):
    """Generate a README, using OpenAI when configured and a template otherwise"""

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        max_files_in_prompt: int = 20,
        max_tokens: int = 2000,
        temperature: float = 0.4
    ):
        super().__init__("ReadmeGenerator")
        self.openai_model_name = openai_model
        self.max_files_in_prompt = max_files_in_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature

        if openai_api_key:
            self.client = OpenAI(api_key=openai_api_key)
            logger.info(f"Initialized OpenAI client with model: {openai_model}")
        else:
            logger.warning("No OpenAI API key provided, README generation will use the template")
            self.client = None

    async def generate(self, inventory: Dict[str, Any], job_input) -> str:
        if self.client is not None:
            try:
                markdown = await asyncio.to_thread(self._generate_ai, inventory, job_input)
                return self.validate_output(markdown)
            except Exception as e:
                logger.warning(f"AI README generation failed, using template: {e}")
        return self.validate_output(self.render_template(inventory, job_input))

    def build_prompt(self, inventory: Dict[str, Any], job_input) -> str:
        files = inventory.get('files', [])[:self.max_files_in_prompt]
        file_summary = '\n'.join(
            f"{f['path']} ({f['language']}) - {len(f.get('functions', []))} functions, "
            f"{len(f.get('classes', []))} classes"
            for f in files
        )
        context = f"The project contains these files:\n{file_summary}"
        if job_input.description:
            context = f"Project description: {job_input.description}\n\n{context}"

        if job_input.mode == 'v1':
            return (
                f'Generate a comprehensive README.md for the project "{job_input.project_name}" '
                f"with repository URL {job_input.repo_url}.\n{context}\n\n"
                "Create a detailed README with sections for description, installation, usage, "
                "API documentation, and contributing guidelines."
            )
        return (
            f'Generate a beginner-friendly README.md for the project "{job_input.project_name}" '
            f"with repository URL {job_input.repo_url}.\n{context}\n\n"
            "Create a simple, clear README with basic sections for what the project does, "
            "how to install it, and how to use it."
        )

    def _generate_ai(self, inventory: Dict[str, Any], job_input) -> str:
        prompt = self.build_prompt(inventory, job_input)
        logger.info(f"Requesting README from {self.openai_model_name} ({len(prompt)} prompt characters)")
        response = self.client.chat.completions.create(
            model=self.openai_model_name,
            messages=[
                {"role": "system", "content": "You are a technical writer who produces clear README files in markdown."},
                {"role": "user", "content": prompt}
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
        markdown = response.choices[0].message.content
        logger.info(f"Generated README: {len(markdown or '')} characters")
        return markdown

    @staticmethod
    def render_template(inventory: Dict[str, Any], job_input) -> str:
        summary = inventory.get('summary', {})
        languages = summary.get('languages', {})
        lines = [
            f"# {job_input.project_name}",
            "",
            job_input.description or f"This is a generated README for {job_input.project_name}.",
            "",
            "## Description",
            "",
            f"This project was analyzed from the repository: {job_input.repo_url}",
            "",
            "## Files",
            "",
            f"This project contains {summary.get('totalFiles', len(inventory.get('files', [])))} files.",
        ]
        if languages:
            lines.append("")
            lines.append("## Languages")
            lines.append("")
            for language, count in sorted(languages.items(), key=lambda item: -item[1]):
                lines.append(f"- {language}: {count} files")
        lines += [
            "",
            "## Getting Started",
            "",
            f"```bash\ngit clone {job_input.repo_url}\n```",
            "",
            "Clone the repository and explore the codebase.",
        ]
        return '\n'.join(lines) + '\n'
