"""Prompt assembly for deck generation and refinement."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from casedeck.slides.models import SlideDeck
from casedeck.templates.models import Template

LEGAL_ARCHITECT_PROMPT = """You are a senior legal presentation architect specialising in Indian law.
You turn case descriptions into courtroom-grade slide decks for law students and junior advocates.

THINK ABOUT CONTENT IN THIS ORDER:
1. Identify the parties, the forum and the procedural posture.
2. Extract the material facts in chronological order.
3. Frame the legal issues as questions the court must answer.
4. Map each issue to the governing provisions and precedents.
5. Set out the arguments on each side, then the ruling or relief.

MANDATORY SLIDE FLOW:
- First slide: Case Overview (parties, court, nature of the matter)
- Then: Facts, Legal Issues, Provisions and Precedents, Arguments
- Last slide: Ruling, Conclusion or Relief Sought

STRUCTURAL LIMITS:
- 3 to 8 slides in total
- 1 or 2 blocks per slide, never more
- Text blocks carry 2 to 4 concise points
- Slide titles are plain text with no markdown symbols

COLOUR CODING (inside block text only):
- *text* (gold) for legal doctrines and principles, e.g. *basic structure*, *mens rea*
- ~text~ (red) for violations and offences, e.g. ~murder~, ~unconstitutional detention~
- _text_ (blue) for statutory provisions, e.g. _Article 21_, _Section 302 IPC_
- Every article or section reference must be wrapped in blue

CITATION STANDARDS:
- Articles as "Article 21" or "Article 19(1)(a)"
- Sections with their Act, e.g. "Section 302 IPC", "Section 154 CrPC"
- Cases as "Party v. Party, (Year) Volume Reporter Page", e.g. "(2017) 10 SCC 1"
- Quote blocks always carry a non-empty citation

BLOCK TYPES:
1. text - { points: ["...", "..."] } for facts, arguments and key points
2. quote - { quote: "...", citation: "Source (Year)" } for judgments and constitutional text
3. callout - { text: "...", type: "info|warning|success|error" } for rulings and critical points
4. timeline - { events: [{ date, title, description }] } with 2-8 events for case progression
5. evidence - { items: [{ label, description }] } with 1-6 items for exhibits and testimony
6. twoColumn - { leftTitle, leftPoints, rightTitle, rightPoints } with 1-5 points per side

IMAGE SUGGESTIONS:
- Up to two short search keywords per slide in suggestedImages
- Prefer neutral courtroom or document imagery; never depict real parties

Always return valid JSON matching the schema."""

RETRY_ADDENDUM = """

STRICTER REVIEW REQUIRED:
The previous draft scored below the quality threshold. This time:
- Wrap every article and section reference in _blue_ markers
- Put legal doctrines in *gold* and offences or violations in ~red~
- Keep every text block to 2-4 points and every slide to 1-2 blocks
- Include Case Overview, Facts and Legal Issues slides
- Cite every case with its year"""

REFINEMENT_SYSTEM_PROMPT = (
    LEGAL_ARCHITECT_PROMPT
    + """

You are now revising an existing deck. Return the complete deck with every slide,
in the original order, changing only the slides marked for modification."""
)


def build_system_prompt(template: Optional[Template] = None, retry: bool = False) -> str:
    prompt = LEGAL_ARCHITECT_PROMPT
    if template is not None:
        prompt += f"\n\nTEMPLATE: {template.name}\n{template.prompt_addendum.strip()}"
    if retry:
        prompt += RETRY_ADDENDUM
    return prompt


def build_user_prompt(
    case_text: str,
    desired_slide_count: Optional[int] = None,
    template: Optional[Template] = None,
) -> str:
    lines = ["Case Description:", case_text, ""]
    if desired_slide_count is not None:
        lines.append(f"Generate EXACTLY {desired_slide_count} slides.")
    elif template is not None:
        lines.append(
            f"The {template.name} format works best with about "
            f"{template.suggested_slide_count} slides."
        )
    if template is not None:
        lines.append(f"Cover these slides in order: {', '.join(template.mandatory_slides)}.")
    lines.append(
        "Follow the citation standards and colour coding exactly, "
        "and keep every slide within the structural limits."
    )
    return "\n".join(lines)


def _slide_numbers(indices: Iterable[int]) -> str:
    return ", ".join(str(index + 1) for index in sorted(indices))


def build_refinement_prompt(
    deck: SlideDeck,
    instructions: str,
    action: str,
    focus_keywords: Sequence[str],
    targets: Sequence[int],
    preserved: Sequence[int],
) -> str:
    lines: List[str] = [
        "REFINEMENT REQUEST:",
        "",
        f"User Instructions: {instructions}",
        f"Action Type: {action}",
    ]
    if focus_keywords:
        lines.append(f"Focus on: {', '.join(focus_keywords)}")
    lines += [
        "",
        "CURRENT PRESENTATION:",
        f"Title: {deck.title or 'Untitled'}",
        f"Total Slides: {len(deck.slides)}",
        "",
    ]
    if targets:
        lines.append(f"TARGET SLIDES TO MODIFY: {_slide_numbers(targets)}")
    if preserved:
        lines.append(f"PRESERVED SLIDES (DO NOT MODIFY): {_slide_numbers(preserved)}")

    lines += ["", "CURRENT SLIDE CONTENT:", ""]
    target_set, preserve_set = set(targets), set(preserved)
    for index, slide in enumerate(deck.slides):
        tag = ""
        if index in preserve_set:
            tag = " [PRESERVE]"
        elif index in target_set:
            tag = " [TARGET]"
        lines.append(f"Slide {index + 1}: {slide.title}{tag}")
        for block_index, block in enumerate(slide.blocks):
            summary = " | ".join(part for part in block.strings() if part)
            lines.append(f"  - Block {block_index + 1} ({block.type}): {summary[:200]}")
        lines.append("")

    lines += [
        "IMPORTANT INSTRUCTIONS:",
        "1. Keep the overall structure and flow of the presentation",
        "2. Apply the requested changes ONLY to [TARGET] slides",
        "3. Reproduce [PRESERVE] slides exactly as they are",
        "4. Keep legal accuracy and the citation standards",
        "5. Follow the colour coding and block limits",
        "",
        "Return the complete refined presentation with all slides.",
    ]
    return "\n".join(lines)
