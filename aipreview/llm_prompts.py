from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from aipreview import templates
from aipreview.llm_parsing import CANONICAL_COMPONENT


_SUPPORTED_STACK = (
    "CRITICAL: Our team ONLY works with the JavaScript ecosystem. You MUST suggest ONLY these technologies:\n"
    "- Frontend: React, Angular, Next.js, TypeScript, Tailwind CSS\n"
    "- Backend: Node.js, Express\n"
    "- Database: MongoDB, PostgreSQL\n"
    "- NO Python, Java, C#, PHP, Ruby, or other non-JS languages."
)

_ANALYSIS_SHAPE = """{
  "title": "Project title based on the description",
  "overview": "2-3 sentence executive summary",
  "features": [
    "Feature 1 with brief description",
    "Feature 2 with brief description",
    "At least 5-8 key features"
  ],
  "techStack": {
    "frontend": ["React or Angular", "TypeScript", "Tailwind CSS"],
    "backend": ["Node.js", "Express"],
    "database": ["MongoDB or PostgreSQL"],
    "deployment": ["Vercel or Docker"],
    "other": ["Git", "Jest", "ESLint"]
  },
  "timeline": {
    "totalWeeks": 8,
    "phases": [
      {"phase": "Planning & Design", "weeks": 2, "deliverables": ["Wireframes", "Design mockups"]},
      {"phase": "Development", "weeks": 4, "deliverables": ["Core features", "Integration"]},
      {"phase": "Testing & Launch", "weeks": 2, "deliverables": ["QA", "Deployment"]}
    ]
  },
  "budgetBreakdown": {
    "total": "Estimated total based on input",
    "breakdown": [
      {"category": "Design", "percentage": 25, "description": "UI/UX design work"},
      {"category": "Development", "percentage": 50, "description": "Core development"},
      {"category": "Testing & QA", "percentage": 15, "description": "Quality assurance"},
      {"category": "Deployment & Training", "percentage": 10, "description": "Launch and handoff"}
    ]
  },
  "risks": [
    "Risk 1 with mitigation strategy",
    "At least 3-4 potential risks"
  ],
  "recommendations": [
    "Recommendation 1 for project success",
    "At least 3 actionable recommendations"
  ]
}"""

_IMAGE_RULES = (
    "IMAGES (CRITICAL):\n"
    "- For any <img>, use ONLY these URLs. No other domains or fake paths.\n"
    "- Option A: https://picsum.photos/400/300?random=SEED - use a numeric SEED per item (1, 2, 3...).\n"
    "- Option B: https://placehold.co/400x300?text=TEXT - URL-encode the card title (e.g. \"Gothic+Dresses\").\n"
    "- Never use placeholder filenames, /placeholder, or other image URLs. Invalid src will be replaced automatically."
)

_COMPONENT_CONTRACT = (
    f"- Component MUST be named: {CANONICAL_COMPONENT}\n"
    f"- Use CORRECT syntax: function {CANONICAL_COMPONENT}() {{ ... }} OR const {CANONICAL_COMPONENT} = () => {{ ... }}\n"
    f"- DO NOT mix function keyword with arrow syntax (WRONG: function {CANONICAL_COMPONENT}() =>)\n"
    f"- End with: export default {CANONICAL_COMPONENT};\n"
    "- NO markdown code blocks (no ```jsx or ```)"
)

_NAV_RULE = (
    "NAV LINKS: Use <button onClick={(e) => { e.preventDefault(); e.stopPropagation(); setCurrentPage('home'); }}> "
    "- NEVER <a href=\"#...\"> or anchor links (keeps navigation inside the preview frame)"
)


def _text(inputs: Mapping[str, Any], key: str, default: str) -> str:
    val = inputs.get(key) if inputs else None
    if isinstance(val, (list, tuple)):
        val = ", ".join(str(v) for v in val if v)
    val = str(val).strip() if val is not None else ""
    return val or default


def _fill(instruction: str, business_name: str, color_label: str) -> str:
    return instruction.replace("{businessName}", business_name).replace("{colorScheme}", color_label)


def _page_structure(template: Dict[str, Any], business_name: str, color_label: str) -> str:
    lines: List[str] = [
        "PAGE STRUCTURE (each page is an inner component, switched via currentPage useState):",
    ]
    for page_name, (state_value, sections) in template["pages"].items():
        lines.append("")
        lines.append(f"{page_name.capitalize()}Page (currentPage === '{state_value}'):")
        for idx, (section_id, instruction) in enumerate(sections, start=1):
            label = section_id[0].upper() + section_id[1:]
            lines.append(f"  {idx}. {label}: {_fill(instruction, business_name, color_label)}")
    return "\n".join(lines)


def _shared_components(template: Dict[str, Any], business_name: str) -> str:
    nav_list = ", ".join(template["nav_pages"])
    header = templates.SHARED_COMPONENTS["header"].replace("for each page", f"for each page ({nav_list})")
    footer = templates.SHARED_COMPONENTS["footer"].replace("Business name", f'Business name "{business_name}"')
    return f"Shared Components (present on ALL pages):\n- {header}\n- {footer}"


def _bullets(title: str, rules: List[str]) -> str:
    return title + "\n" + "\n".join(f"- {r}" for r in rules)


def build_analysis_prompt(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> str:
    """Prompt for the JSON project-analysis document.

    The user's text is interpolated as-is; no escaping is applied.
    """
    inputs = inputs or {}
    tech_pref = _text(
        inputs,
        "techStack",
        "React or Angular, Node.js, Express, MongoDB or PostgreSQL - JavaScript/TypeScript only",
    )
    return (
        "You are an expert web development agency project analyst. "
        "Generate a comprehensive project specification in JSON format.\n\n"
        f"{_SUPPORTED_STACK}\n\n"
        f"CLIENT REQUEST: {prompt}\n"
        f"BUDGET: {_text(inputs, 'budget', 'Not specified')}\n"
        f"TIMELINE: {_text(inputs, 'timeline', 'Not specified')}\n"
        f"PROJECT TYPE: {_text(inputs, 'projectType', 'General web project')}\n"
        f"TECH PREFERENCES (from user, must stay within JS ecosystem): {tech_pref}\n\n"
        "Provide a detailed analysis in the following JSON structure "
        "(respond ONLY with valid JSON, no markdown):\n\n"
        f"{_ANALYSIS_SHAPE}\n\n"
        "Generate the response now:"
    )


def build_website_prompt(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> str:
    inputs = inputs or {}
    business_name = templates.derive_display_name(prompt)
    colors = templates.color_scheme_for(prompt)
    style = templates.style_for(prompt)
    template_type = templates.classify(prompt)
    is_ecommerce = template_type == templates.ECOMMERCE
    template = templates.get_template(template_type)
    main_page = "ProductsPage" if is_ecommerce else "ServicesPage"
    main_content = (
        "E-commerce: 6-12 product cards with image, name, price - grid layout"
        if is_ecommerce
        else "Business: 4-6 service cards with icon, title, description - hover effects"
    )
    return (
        "You are an expert React developer. Generate a HIGH-QUALITY, PERSONALIZED, PRODUCTION-READY React component.\n\n"
        "MANDATORY: Generate ONLY React/JavaScript code. No Angular templates, no Vue, no other frameworks. "
        "Use React 18 functional components.\n\n"
        "PROJECT DETAILS:\n"
        f"- Type: {_text(inputs, 'projectType', 'Website')}\n"
        f"- Business Name/Product: \"{business_name}\"\n"
        f"- Business Type: {'e-commerce' if is_ecommerce else 'business'}\n"
        f"- Color Scheme: {colors.label} (use Tailwind classes like bg-{colors.primary}, text-{colors.primary})\n"
        f"- Style: {style}\n"
        f"- Budget: {_text(inputs, 'budget', 'Not specified')}\n\n"
        "CRITICAL REQUIREMENTS:\n"
        f"1. USE THE EXACT BUSINESS NAME \"{business_name}\" in the hero title, not truncated or generic text\n"
        f"2. Create a MULTI-PAGE website with: HomePage, AboutPage, {main_page}, ContactPage\n"
        f"3. Use useState for currentPage ({', '.join(repr(p) for p in template['nav_pages'])}) and switch pages via onClick\n"
        f"4. Apply the color scheme {colors.label} throughout (gradients, buttons, accents)\n"
        f"5. Style should be {style} - playful/fun means rounded corners and bright colors, professional means clean lines and muted tones\n"
        "6. Generate REAL, SPECIFIC content - NO placeholders, NO \"Lorem Ipsum\", NO truncated text\n"
        f"7. {_NAV_RULE}\n\n"
        f"{_IMAGE_RULES}\n\n"
        f"{_page_structure(template, business_name, colors.label)}\n\n"
        f"{_shared_components(template, business_name)}\n\n"
        f"MAIN CONTENT ({main_page}): {main_content}\n\n"
        "TECHNICAL REQUIREMENTS:\n"
        "- React 18 functional component with useState hooks\n"
        "- Tailwind CSS classes ONLY (Tailwind CDN is loaded separately)\n"
        "- Fully responsive with sm:, md:, lg: breakpoints\n"
        "- Start with: import { useState } from 'react';\n"
        f"{_COMPONENT_CONTRACT}\n"
        "- Return ONLY the complete React component code\n\n"
        "Generate the complete component NOW:"
    )


def build_combined_prompt(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> str:
    inputs = inputs or {}
    template_type = templates.classify(_text(inputs, "projectType", "") or prompt)
    template = templates.get_template(template_type)
    is_ecommerce = template_type == templates.ECOMMERCE
    business_name = templates.derive_display_name(prompt)
    colors = templates.color_scheme_for(prompt)
    style = templates.style_for(prompt)
    tech_pref = _text(inputs, "techStack", "React, Node.js, MongoDB - JavaScript/TypeScript only")
    main_page = "ProductsPage" if is_ecommerce else "ServicesPage"
    return (
        "Generate a complete project analysis and React component in JSON format.\n\n"
        "REQUIREMENTS:\n"
        f"- Project: \"{prompt}\"\n"
        f"- Business: \"{business_name}\"\n"
        f"- Type: {template_type}\n"
        f"- Budget: {_text(inputs, 'budget', 'Not specified')}\n"
        f"- Timeline: {_text(inputs, 'timeline', 'Not specified')}\n"
        f"- Tech: {tech_pref} (JS ecosystem only: React, Node.js, MongoDB/PostgreSQL)\n\n"
        f"{_page_structure(template, business_name, colors.label)}\n\n"
        f"{_shared_components(template, business_name)}\n\n"
        f"{_bullets('UI RICHNESS REQUIREMENTS:', templates.UI_RULES)}\n\n"
        "STYLING:\n"
        f"- Colors: {colors.label} (use Tailwind classes: bg-{{color}}, text-{{color}}, from-{{color}}, to-{{color}})\n"
        f"- Style: {style}\n"
        f"- Gradients: bg-gradient-to-r from-{colors.primary} to-{colors.secondary}\n\n"
        "OUTPUT FORMAT (JSON only, no markdown):\n"
        "CRITICAL: Return ONLY valid JSON. Escape all special characters in strings:\n"
        "- Use \\n for newlines in strings\n"
        "- Use \\\" for quotes in strings\n"
        "- Use \\\\ for backslashes\n"
        "- NO unescaped control characters\n"
        "- NO markdown code blocks around JSON\n\n"
        "{\n"
        f"  \"analysis\": {_indent(_ANALYSIS_SHAPE, 2)},\n"
        f"  \"code\": \"import {{ useState }} from 'react';\\nfunction {CANONICAL_COMPONENT}() {{ ... }}\\nexport default {CANONICAL_COMPONENT};\"\n"
        "}\n\n"
        "CRITICAL CODE REQUIREMENTS:\n"
        f"{_COMPONENT_CONTRACT}\n"
        f"- MULTI-PAGE: useState('home') for currentPage. Define HomePage, AboutPage, {main_page}, ContactPage "
        "as inner components and render {currentPage === 'home' && <HomePage />} etc.\n"
        f"- {_NAV_RULE}\n"
        f"- ALL inner page components and helpers MUST be defined inside the {CANONICAL_COMPONENT} function body\n"
        "- Tailwind CSS classes only (CDN loaded separately)\n"
        "- Images: ONLY https://picsum.photos/WIDTH/HEIGHT?random=SEED or https://placehold.co/WIDTHxHEIGHT?text=TEXT\n"
        "- NO placeholder text, NO Lorem Ipsum - write real specific content\n\n"
        f"{_bullets('COMPACT CODE PATTERN (CRITICAL - keeps output within token limit):', templates.CODE_RULES)}\n\n"
        "Generate now:"
    )


def build_regenerate_prompt(existing_code: str, modifications: Optional[str] = None) -> str:
    requested = (modifications or "").strip() or "Change color scheme, adjust spacing and layout for a fresh look"
    return (
        "Given this existing React component code, modify ONLY the styling (colors, spacing, layout). "
        "Keep all content, structure, and functionality identical.\n\n"
        "EXISTING CODE:\n"
        "```jsx\n"
        f"{existing_code}\n"
        "```\n\n"
        "MODIFICATIONS REQUESTED:\n"
        f"{requested}\n\n"
        "REQUIREMENTS:\n"
        f"- Keep component name: {CANONICAL_COMPONENT}\n"
        "- Keep all content and text identical\n"
        "- Keep all functionality identical\n"
        "- Only modify: colors, spacing, padding, margins, layout (grid/flex), shadows, borders\n"
        "- Use Tailwind CSS classes\n"
        "- Return ONLY the complete React component code\n"
        f"{_COMPONENT_CONTRACT}\n\n"
        "Generate the modified component:"
    )


def _indent(block: str, spaces: int) -> str:
    pad = " " * spaces
    lines = block.splitlines()
    return "\n".join([lines[0]] + [pad + ln for ln in lines[1:]])
