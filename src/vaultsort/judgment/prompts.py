"""Prompt templates for the judgment service."""

import re


def render_template(template: str, **values: object) -> str:
    """Substitute `{name}` placeholders for the given names only.

    Other braces are left alone so custom templates may embed JSON examples.
    """
    def _sub(match: re.Match) -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return re.sub(r"\{(\w+)\}", _sub, template)


SYSTEM_PROMPT = """You are an expert at organizing files in note-taking systems.
Your task is to recommend the most appropriate folder for a given note based on:
1. The note's content and topics
2. The existing folder structure
3. The coherence and organization of each folder

Respond ONLY with valid JSON in this exact format:
{
  "primaryRecommendation": {"folderPath": "exact/folder/path", "folderName": "path", "confidence": 85, "reasoning": "...", "matchedTopics": ["topic"]},
  "alternatives": [
    {"folderPath": "other/path", "folderName": "path", "confidence": 60, "reasoning": "...", "matchedTopics": []}
  ],
  "suggestedNewFolder": {"name": "FolderName", "reasoning": "...", "suggestedParent": "parent/path"},
  "analysisMetadata": {"topicsIdentified": ["topic"]}
}

Rules:
- confidence is an integer from 0 to 100
- folderPath must exactly match one of the listed folders
- give 2-3 alternatives
- include suggestedNewFolder only if no existing folder fits well"""

USER_PROMPT_TEMPLATE = """Analyze this note and recommend a folder for it.

Note Title: {note_title}
Tags: {tags}
Headings: {headings}
Content Preview: {content_preview}

Current Vault Structure:
{vault_structure}

User Context: {user_context}

Recommend the best folder and provide 2-3 alternatives with reasoning.
Respond ONLY with valid JSON."""

FOLDER_ENTRY_TEMPLATE = """Folder: "{folder_path}"
  Description: {description}
  Files: {file_count}
  Examples: {examples}"""

FOLDER_NAMES_PROMPT = """Based on this note and the user context, suggest 3 new folder names where this note could be organized.

Note: {note_title}
Content preview: {content_preview}
User context: {user_context}
Most likely folders: {top_folders}

Requirements:
1. Names should be concise (1-3 words)
2. Should reflect the note content
3. Should follow existing vault naming conventions
4. First suggestion should be the best match
5. Use PascalCase for consistency

Respond with a JSON array of exactly 3 suggestions:
["Suggestion1", "Suggestion2", "Suggestion3"]"""

ANALYSIS_SYSTEM_PROMPT = """You are a vault organization analyst. Analyze the vault structure and identify:
1. Issues with the current organization (overcrowded, orphaned, overlapping or incoherent folders)
2. Recommendations for improvement (move, create, rename, merge)

Be specific and actionable."""

ANALYSIS_USER_PROMPT = """Analyze this vault organization:

{folder_stats}

Respond ONLY with JSON in this format:
{{
  "issues": [{{"type": "overcrowded|orphaned|incoherent|overlap", "severity": "high|medium|low", "description": "..."}}],
  "recommendations": [{{"type": "move|create|rename|merge", "description": "..."}}],
  "optimizationScore": {{"current": 65, "potential": 85, "improvement": 20}}
}}"""

FOLDER_NOTE_SYSTEM_PROMPT = """You write folder notes for a markdown note-taking vault.
A folder note introduces a folder and the notes it holds. Respond with markdown only."""

FOLDER_NOTE_PROMPT = """Analyze the notes in the folder "{folder_name}":
{summaries}

Generate a comprehensive folder note (markdown) including:
1. Thematic summary
2. Key concepts
3. Key files list
4. Connections"""
