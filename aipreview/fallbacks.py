"""Offline stand-ins served whenever the model cannot be reached.

Everything here is deterministic for a given prompt and inputs, so a
fallback preview is stable across retries.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment

from aipreview.models import AnalysisDocument
from aipreview.templates import DEFAULT_ACCENT, FALLBACK_ACCENTS, derive_display_name


log = logging.getLogger(__name__)

DEFAULT_TOTAL_WEEKS = 10
DEFAULT_BUDGET = "$15,000 - $25,000"
FALLBACK_BADGE = "Placeholder preview: AI unavailable"
FALLBACK_SUBTITLE = "A professional landing page tailored to your needs. Get started today."

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_JSX_UNSAFE_RE = re.compile(r"[{}<>]")

# Output is JSX source, not HTML; names are stripped of braces and angle brackets instead.
_env = Environment(autoescape=False, keep_trailing_newline=True)


_FEATURES = [
    "Responsive design optimized for all devices and screen sizes",
    "User authentication and role-based authorization system",
    "Admin dashboard with comprehensive management tools",
    "Real-time notifications and live updates",
    "Advanced search functionality with filtering options",
    "Data analytics and reporting capabilities",
    "API integration with third-party services",
    "SEO optimization and performance tuning",
    "Secure payment processing integration",
    "Multi-language support and localization",
]

_TECH_STACK = {
    "frontend": ["React 18", "TypeScript", "Tailwind CSS", "React Router"],
    "backend": ["Node.js", "Express.js", "JWT Authentication", "RESTful API"],
    "database": ["MongoDB"],
    "deployment": ["Vercel", "Docker", "Nginx"],
    "other": ["Git", "GitHub Actions", "Jest", "ESLint", "Prettier"],
}

_PHASES = [
    {
        "phase": "Planning & Design",
        "weeks": 2,
        "deliverables": [
            "Requirements documentation",
            "User flow diagrams",
            "Wireframes and mockups",
            "Technical architecture design",
            "Database schema design",
        ],
    },
    {
        "phase": "Development Sprint 1",
        "weeks": 3,
        "deliverables": ["Core feature development", "API implementation", "Database setup", "Authentication system"],
    },
    {
        "phase": "Development Sprint 2",
        "weeks": 3,
        "deliverables": ["Advanced features", "Third-party integrations", "Admin dashboard", "Payment processing"],
    },
    {
        "phase": "Testing & Launch",
        "weeks": 2,
        "deliverables": [
            "Unit and integration testing",
            "User acceptance testing",
            "Performance optimization",
            "Production deployment",
            "Documentation and training",
        ],
    },
]

_BUDGET_ITEMS = [
    ("Planning & Design", 20, "Requirements analysis, UI/UX design, wireframes, and system architecture"),
    ("Frontend Development", 30, "User interface implementation, responsive design, and client-side logic"),
    ("Backend Development", 30, "API development, database design, authentication, and business logic"),
    ("Testing & QA", 12, "Comprehensive testing, bug fixes, and quality assurance"),
    ("Deployment & Support", 8, "Production deployment, documentation, training, and initial support"),
]

_RISKS = [
    "Scope creep - Mitigated through clear requirements documentation and change request process with defined timelines and costs",
    "Third-party API dependencies - Mitigated by implementing fallback mechanisms, thorough testing, and choosing reliable service providers",
    "Timeline delays due to unforeseen complexities - Mitigated through agile methodology with regular check-ins and buffer time in estimates",
    "Performance issues at scale - Mitigated through load testing, optimization during development, and scalable architecture design",
    "Security vulnerabilities - Mitigated by following security best practices, regular security audits, and using proven security libraries",
    "Browser compatibility issues - Mitigated through cross-browser testing and using modern, well-supported technologies",
]

_RECOMMENDATIONS = [
    "Start with MVP approach to validate core features and gather user feedback before full-scale development",
    "Implement CI/CD pipeline early for faster iterations, automated testing, and reliable deployments",
    "Plan for regular security audits and updates to protect user data and maintain system integrity",
    "Build with modular architecture to facilitate easier future enhancements and maintenance",
    "Prioritize mobile-first design approach for better user experience across all devices",
    "Set up comprehensive monitoring and analytics from day one to track performance and user behavior",
    "Create detailed documentation for both users and developers to ensure smooth handoff and maintenance",
    "Consider scalability from the start to accommodate future growth without major refactoring",
]


def _leading_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    m = _LEADING_INT_RE.match(str(value or ""))
    return int(m.group(1)) if m else None


def mock_analysis(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    inputs = inputs or {}
    project_type = inputs.get("projectType") or ""
    weeks = _leading_int(inputs.get("timeline")) or DEFAULT_TOTAL_WEEKS
    doc = {
        "title": f"{project_type or 'Web'} Project Analysis",
        "overview": (
            f"This comprehensive {project_type or 'web'} project addresses your requirements: "
            f"\"{(prompt or '')[:100]}...\" Our analysis suggests a modern, scalable solution with "
            "focus on user experience and business goals."
        ),
        "features": list(_FEATURES),
        "techStack": {k: list(v) for k, v in _TECH_STACK.items()},
        "timeline": {
            "totalWeeks": weeks,
            "phases": [dict(p, deliverables=list(p["deliverables"])) for p in _PHASES],
        },
        "budgetBreakdown": {
            "total": inputs.get("budget") or DEFAULT_BUDGET,
            "breakdown": [
                {"category": c, "percentage": pct, "description": d} for c, pct, d in _BUDGET_ITEMS
            ],
        },
        "risks": list(_RISKS),
        "recommendations": list(_RECOMMENDATIONS),
    }
    return AnalysisDocument.model_validate(doc).to_json_dict()


_WEBSITE_TEMPLATE = _env.from_string(
    """import React, { useState } from 'react';

function App() {
  const [isHovered, setIsHovered] = useState(null);

  const features = [
    { icon: '\U0001F680', title: 'Modern Design', description: 'Clean, contemporary interface that engages your users and drives conversions.' },
    { icon: '\U0001F4F1', title: 'Fully Responsive', description: 'Perfect experience on all devices: desktop, tablet, and mobile.' },
    { icon: '⚡', title: 'Fast Performance', description: 'Optimized for speed with lightning-fast load times.' },
    { icon: '\U0001F512', title: 'Secure', description: 'Built with security best practices to protect your data.' },
    { icon: '\U0001F4BC', title: 'Professional', description: 'Enterprise-grade solution that scales with your business.' },
    { icon: '\U0001F3A8', title: 'Customizable', description: 'Easily adapt to match your brand and requirements.' }
  ];

  return (
    <div className="min-h-screen {{ section_bg }}">
      <section className="{{ hero_bg }} text-white py-20 px-4">
        <div className="max-w-4xl mx-auto text-center">
          <div className="inline-block px-4 py-1 rounded-full bg-white/10 text-sm mb-6">{{ badge }}</div>
          <h1 className="text-4xl md:text-6xl font-bold mb-4">{{ display_name }}</h1>
          <p className="text-lg md:text-xl mb-8 opacity-90">{{ subtitle }}</p>
          <button className="{{ button }} px-8 py-3 rounded-full font-semibold transform hover:scale-105 transition-all duration-200 shadow-lg">Get Started</button>
        </div>
      </section>
      <section className="py-16 px-4">
        <div className="max-w-6xl mx-auto">
          <h2 className="text-3xl md:text-5xl font-bold text-center mb-12 {{ section_title }}">Key Features</h2>
          <div className="grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3 gap-6">
            {features.map((feature, index) => (
              <div key={index} className={"{{ card_bg }} p-6 rounded-lg shadow-md transition-all duration-300 " + (isHovered === index ? 'transform -translate-y-2 shadow-xl' : '')} onMouseEnter={() => setIsHovered(index)} onMouseLeave={() => setIsHovered(null)}>
                <div className="text-4xl mb-4">{feature.icon}</div>
                <h3 className="text-xl font-semibold mb-2 {{ card_title }}">{feature.title}</h3>
                <p className="{{ card_desc }}">{feature.description}</p>
              </div>
            ))}
          </div>
        </div>
      </section>
      <footer className="{{ footer_bg }} text-white py-8 px-4 text-center">
        <p className="text-gray-300">&copy; {new Date().getFullYear()} {{ display_name }}. Built with Chapadevs.</p>
      </footer>
    </div>
  );
}

export default App;"""
)


def _theme(prompt: str) -> Dict[str, str]:
    lower = (prompt or "").lower()
    accent = next((c for c in FALLBACK_ACCENTS if c in lower), DEFAULT_ACCENT)
    if "dark" in lower:
        return {
            "hero_bg": "bg-gradient-to-r from-gray-900 via-gray-800 to-gray-900",
            "section_bg": "bg-gray-900",
            "section_title": "text-gray-100",
            "card_bg": "bg-gray-800",
            "card_title": f"text-{accent}-400",
            "card_desc": "text-gray-400",
            "footer_bg": "bg-black",
            "button": "bg-white text-gray-900 hover:bg-gray-200",
        }
    return {
        "hero_bg": f"bg-gradient-to-r from-{accent}-600 to-indigo-600",
        "section_bg": "bg-gray-50",
        "section_title": "text-gray-800",
        "card_bg": "bg-white",
        "card_title": f"text-{accent}-600",
        "card_desc": "text-gray-600",
        "footer_bg": "bg-gray-800",
        "button": f"bg-white text-{accent}-600 hover:bg-gray-100",
    }


def mock_website(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> str:
    """Single-page placeholder component named App, themed from prompt keywords."""
    log.warning("Serving placeholder website preview; the model is unavailable")
    name = derive_display_name(prompt, max_words=4, max_chars=40, default="Your Project")
    name = _JSX_UNSAFE_RE.sub("", name).strip() or "Your Project"
    return _WEBSITE_TEMPLATE.render(
        **_theme(prompt),
        badge=FALLBACK_BADGE,
        display_name=name,
        subtitle=FALLBACK_SUBTITLE,
    )


def mock_combined(prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return {"analysis": mock_analysis(prompt, inputs), "code": mock_website(prompt, inputs)}
