"""Suggestion prompt templates.

STORY_PROMPT — picture-book style narrative drafting.
VIDEO_SCENE_PROMPT — shot-by-shot storyboard drafting.
Both are followed by the user input, an optional reference-image note, and
the closing instruction assembled in ``suggestions.build_suggestion_prompt``.
"""

from __future__ import annotations

STORY_PROMPT = """\
# Objective:
To generate text that users can use for creating picture books, based on their input text and images.

# Instructions:
Output only the core text without any prefaces, notes, questions, or image generation. \
Provide only the core text. Do not include a preface, notes, questions, or explanations. \
Do not generate images. Language: English.

# Method:
Analyze the user's input text and the content of their images. Create and describe a story \
that meets the user's requirements.

# Important:
- Clearly define the scene breaks
- Focus on narrative flow and character development
- Describe settings, characters, and actions vividly
- If reference images are provided, incorporate their elements naturally into the story"""

VIDEO_SCENE_PROMPT = """\
# Objective:
To generate text that users can use for creating videos, based on their input text and images.

# Instructions:
Output only the core text without any prefaces, notes, questions, or image generation. \
Provide only the core text. Do not include a preface, notes, questions, or explanations. \
Do not generate images. Language: English.

# Method:
Analyze the user's input text and the content of their images. Create a detailed text-based \
storyboard that meets the user's requirements.

# Important:
- Describe the subject's acting and the camera work in concrete and detailed manner
- Include specific shot types (close-up, wide shot, pan, zoom, etc.)
- Specify camera angles and movements
- If the user requests only one scene, create a single scene with a single shot and do not switch shots
- If reference images are provided, describe how they should be used in the video"""

EMPTY_INPUT_PLACEHOLDER = (
    "[No text provided - create an engaging story or scene based on the provided images, "
    "or if no images, create a sample story about a magical adventure]"
)

REFERENCE_IMAGES_NOTE = """\
# Reference Images:
The user has provided {count} reference image(s). Please analyze these images and incorporate \
their elements (characters, settings, objects, mood) into the generated text. Describe how each \
image relates to the story or scene."""

GENERATE_INSTRUCTION = """\
# Generate:
Now, based on the above context, generate the appropriate text for the user."""
