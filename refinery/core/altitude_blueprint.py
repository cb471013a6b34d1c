"""Altitude refinement: the fixed four-layer sequence as declarative data.

Layers:  30k (Vision) → 20k (Category) → 10k (Specialization) → 5k (Execution)

Indicators, branch rules, readiness signals and thresholds are tables keyed by
altitude. Domain variants only swap focus text and questions. The execution
playbooks drive the plan assembled once 5k is reached.
"""

from typing import Any

from refinery.core.layer_sequence import LayerSequence, create_template_from_blueprint

ALTITUDES = ["30k", "20k", "10k", "5k"]

ALTITUDE_NAME = "Altitude Refinement"
ALTITUDE_DESCRIPTION = (
    "Narrow a vague idea from vision to category to specialization to an execution plan"
)

# =============================================================================
# Layers
# =============================================================================

ALTITUDE_LAYERS: dict[str, dict[str, Any]] = {
    "30k": {
        "name": "Vision",
        "description": "High-level vision and goals - the big picture",
        "focus": "Explore the user's overarching vision, values, and long-term aspirations",
        "questions": [
            "What kind of impact do you want to make in the world?",
            "What values are most important to you in this pursuit?",
            "What does success look like to you in 5-10 years?",
            "What excites you most about this goal?",
            "How big or small do you want this to be?",
        ],
        "transition": "Moving from vision to specific categories and industries",
    },
    "20k": {
        "name": "Category",
        "description": "Specific categories and industries - narrowing down from vision",
        "focus": "Identify the specific industry, sector, or category that aligns with their vision",
        "questions": [
            "What industry or sector feels most aligned with your vision?",
            "What type of approach or model appeals to you most?",
            "What kind of work environment do you thrive in?",
            "Who do you want to serve or work with?",
            "Where do you want to focus geographically?",
        ],
        "transition": "Moving from category to specific specializations and niches",
    },
    "10k": {
        "name": "Specialization",
        "description": "Specific specializations and niches - finding their unique angle",
        "focus": "Discover their unique specialization, niche, or approach within the chosen category",
        "questions": [
            "What specific aspect or niche within this area interests you most?",
            "What would make your approach or offering unique?",
            "What skills or strengths do you want to leverage?",
            "What specific problem or need will you address?",
            "What methodology or approach will you use?",
        ],
        "transition": "Moving from specialization to concrete execution and implementation",
    },
    "5k": {
        "name": "Execution",
        "description": "Concrete actions, timeline, and resources - getting things done",
        "focus": "Identify the core modules, components, or building blocks that make up the specialization",
        "questions": [
            "What are the key components or modules of your approach?",
            "What can you build, test, or implement first?",
            "What resources, tools, or support will you need?",
            "What's your timeline for getting started and making progress?",
            "How will you measure success and track progress?",
        ],
        "transition": "Ready to execute and implement your refined plan",
    },
}

# Domain variants: altitude -> (focus, questions)
ALTITUDE_DOMAINS: dict[str, dict[str, tuple[str, list[str]]]] = {
    "general": {},
    "career": {
        "30k": (
            "Explore the user's career vision, values, and long-term professional aspirations",
            [
                "What kind of work excites you most?",
                "What impact do you want to make in your career?",
                "What does professional success look like to you?",
            ],
        ),
        "20k": (
            "Identify the specific industry, sector, or career field that aligns with their vision",
            [
                "What industry or field feels right for you?",
                "What type of role appeals to you most?",
                "What kind of work environment do you thrive in?",
            ],
        ),
        "10k": (
            "Discover their unique specialization, role, or niche within the chosen career field",
            [
                "What specific role or specialization interests you most?",
                "What would make you unique in this field?",
                "What skills or strengths do you want to leverage?",
            ],
        ),
        "5k": (
            "Identify the core skills, experiences, and steps needed to achieve their career goals",
            [
                "What skills or certifications do you need?",
                "What experiences should you gain?",
                "What steps can you take first?",
            ],
        ),
    },
    "business": {
        "30k": (
            "Explore the user's business vision, values, and long-term entrepreneurial aspirations",
            [
                "What business idea excites you most?",
                "What problem do you want to solve?",
                "What does business success look like to you?",
            ],
        ),
        "20k": (
            "Identify the specific market, industry, or business model that aligns with their vision",
            [
                "What market or industry should you target?",
                "What business model appeals to you?",
                "What type of business structure do you prefer?",
            ],
        ),
        "10k": (
            "Discover their unique product/service offering and competitive advantage",
            [
                "What specific product or service will you offer?",
                "What makes your solution unique?",
                "What competitive advantages do you have?",
            ],
        ),
        "5k": (
            "Identify the core business modules, MVP features, and development phases",
            [
                "What are the core features of your MVP?",
                "How can you break this into development phases?",
                "What can you build and test first?",
            ],
        ),
    },
    "technology": {
        "30k": (
            "Explore the user's technology vision and the problems they want to solve",
            [
                "What technology problem excites you most?",
                "What impact do you want to make?",
                "What does success look like for this project?",
            ],
        ),
        "20k": (
            "Identify the specific technology domain, platform, or approach to pursue",
            [
                "What technology domain should you focus on?",
                "What platform or approach appeals to you?",
                "What type of solution do you want to build?",
            ],
        ),
        "10k": (
            "Discover their unique technical solution and architecture approach",
            [
                "What specific technical solution will you build?",
                "What makes your approach unique?",
                "What technologies or frameworks will you use?",
            ],
        ),
        "5k": (
            "Identify the core system modules, components, and development phases",
            [
                "What are the core modules of your system?",
                "How can you break this into development phases?",
                "What can you build and test first?",
            ],
        ),
    },
    "creative": {
        "30k": (
            "Explore the user's creative vision and the stories they want to tell",
            [
                "What creative project excites you most?",
                "What message do you want to share?",
                "What does creative success look like to you?",
            ],
        ),
        "20k": (
            "Identify the specific creative medium, genre, or format to pursue",
            [
                "What creative medium feels right for you?",
                "What genre or style appeals to you?",
                "What type of content do you want to create?",
            ],
        ),
        "10k": (
            "Discover their unique creative voice and artistic approach",
            [
                "What specific creative angle will you take?",
                "What makes your style unique?",
                "What techniques or approaches will you use?",
            ],
        ),
        "5k": (
            "Identify the core creative modules, content pieces, and production phases",
            [
                "What are the core pieces of your creative project?",
                "How can you break this into production phases?",
                "What can you create and share first?",
            ],
        ),
    },
    "learning": {
        "30k": (
            "Explore the user's learning vision and the knowledge they want to acquire",
            [
                "What learning goal excites you most?",
                "What knowledge do you want to gain?",
                "What does learning success look like to you?",
            ],
        ),
        "20k": (
            "Identify the specific subject area, field, or domain to focus on",
            [
                "What subject area should you focus on?",
                "What type of learning appeals to you?",
                "What field do you want to explore?",
            ],
        ),
        "10k": (
            "Discover their unique learning approach and specialization within the field",
            [
                "What specific aspect of this field interests you most?",
                "What makes your learning approach unique?",
                "What skills do you want to develop?",
            ],
        ),
        "5k": (
            "Identify the core learning modules, resources, and study phases",
            [
                "What are the core topics you need to learn?",
                "How can you break this into study phases?",
                "What can you learn and practice first?",
            ],
        ),
    },
    "personal": {
        "30k": (
            "Explore the user's personal vision and the life they want to create",
            [
                "What personal goal excites you most?",
                "What kind of life do you want to build?",
                "What does personal success look like to you?",
            ],
        ),
        "20k": (
            "Identify the specific life area, habit, or change to focus on",
            [
                "What life area should you focus on?",
                "What type of change appeals to you?",
                "What aspect of your life do you want to improve?",
            ],
        ),
        "10k": (
            "Discover their unique approach and method for achieving their personal goal",
            [
                "What specific approach interests you most?",
                "What makes your method unique?",
                "What strengths can you leverage?",
            ],
        ),
        "5k": (
            "Identify the core action modules, habits, and implementation phases",
            [
                "What are the core actions you need to take?",
                "How can you break this into phases?",
                "What can you start doing first?",
            ],
        ),
    },
}

# =============================================================================
# Vocabulary
# =============================================================================

# Checked in altitude order when a session has no tree yet; first match wins
ALTITUDE_INDICATORS: dict[str, list[str]] = {
    "30k": ["vision", "goal", "dream", "ultimate", "big picture"],
    "20k": ["category", "industry", "type", "domain", "field"],
    "10k": ["specialization", "niche", "specific", "focus", "segment"],
    "5k": ["execute", "implement", "action", "plan", "timeline", "resource"],
}

# Signals shared by every altitude
COMMON_SIGNALS: list[dict[str, Any]] = [
    {
        "name": "intent",
        "terms": ["want", "plan", "goal", "start", "build", "create", "become", "launch", "achieve"],
        "weight": 0.1,
    },
    {
        "name": "vagueness",
        "terms": [
            "maybe", "something", "kind of", "sort of", "not sure", "unsure",
            "general", "vague", "possibly", "somehow", "whatever",
        ],
        "weight": -0.15,
    },
    {
        "name": "specificity",
        "terms": ["specific", "exact", "precise", "particular", "concrete", "detailed", "definite"],
        "weight": 0.1,
    },
    {
        "name": "measurability",
        "terms": ["measure", "track", "metric", "kpi", "target", "percentage", "revenue", "income"],
        "weight": 0.1,
    },
]

# Layer domain terms carry a one-off bonus on top of their per-hit weight
ALTITUDE_DOMAIN_SIGNALS: dict[str, dict[str, Any]] = {
    "30k": {
        "name": "vision_terms",
        "terms": ["vision", "impact", "purpose", "mission", "success", "values", "dream", "future", "freedom"],
        "weight": 0.1,
        "bonus": 0.1,
    },
    "20k": {
        "name": "category_terms",
        "terms": ["industry", "sector", "category", "market", "field", "domain", "business", "business model"],
        "weight": 0.1,
        "bonus": 0.15,
    },
    "10k": {
        "name": "specialization_terms",
        "terms": [
            "niche", "specialize", "specialization", "segment", "target audience",
            "unique", "clients", "customers", "focus",
        ],
        "weight": 0.1,
        "bonus": 0.2,
    },
    "5k": {
        "name": "execution_terms",
        "terms": [
            "timeline", "budget", "milestone", "license", "step", "steps", "week", "weeks",
            "month", "months", "resources", "tools", "schedule", "deadline",
        ],
        "weight": 0.1,
        "bonus": 0.2,
    },
}

ALTITUDE_THRESHOLDS: dict[str, dict[str, float]] = {
    "30k": {"red": 0.2, "yellow": 0.5, "green": 0.7},
    "20k": {"red": 0.3, "yellow": 0.6, "green": 0.8},
    "10k": {"red": 0.3, "yellow": 0.6, "green": 0.8},
    "5k": {"red": 0.4, "yellow": 0.7, "green": 0.9},
}

# Branches extracted when a layer is the one the text is heading towards
ALTITUDE_BRANCH_RULES: dict[str, list[dict[str, Any]]] = {
    "30k": [
        {"label": "Goal", "value": "Financial Freedom", "triggers": ["financial freedom", "financially free"]},
        {"label": "Goal", "value": "Helping Others", "triggers": ["help people", "helping people", "help others"]},
        {"label": "Goal", "value": "Entrepreneurship", "triggers": ["own business", "be my own boss", "entrepreneur"]},
    ],
    "20k": [
        {"label": "Industry", "value": "Insurance", "triggers": ["insurance"]},
        {"label": "Industry", "value": "Real Estate", "triggers": ["real estate", "realtor", "property market"]},
        {"label": "Industry", "value": "Technology", "triggers": ["software", "technology", "saas", "tech startup"]},
        {"label": "Industry", "value": "Healthcare", "triggers": ["healthcare", "health care", "medical"]},
        {"label": "Industry", "value": "Finance", "triggers": ["finance", "banking", "financial services"]},
        {"label": "Industry", "value": "Education", "triggers": ["education", "teaching", "tutoring"]},
        {"label": "Business Model", "value": "Consulting", "triggers": ["consulting", "consultant"]},
        {"label": "Business Model", "value": "Agency", "triggers": ["agent", "agency", "brokerage"]},
        {"label": "Venture Type", "value": "Business", "triggers": ["start a business", "business"]},
    ],
    "10k": [
        {"label": "Specialization", "value": "Life Insurance", "triggers": ["life insurance"]},
        {"label": "Specialization", "value": "Health Insurance", "triggers": ["health insurance"]},
        {"label": "Specialization", "value": "Auto Insurance", "triggers": ["auto insurance", "car insurance"]},
        {
            "label": "Specialization",
            "value": "Property & Casualty",
            "triggers": ["property and casualty", "home insurance", "homeowners insurance"],
        },
        {"label": "Specialization", "value": "Residential Real Estate", "triggers": ["residential"]},
        {"label": "Specialization", "value": "Commercial", "triggers": ["commercial"]},
        {"label": "Product Type", "value": "Mobile App", "triggers": ["mobile app", "ios app", "android app"]},
        {"label": "Product Type", "value": "Web Application", "triggers": ["web app", "web application", "website"]},
        {"label": "Focus", "value": "Independent Agency", "triggers": ["independent agent", "independent agency"]},
        {"label": "Target Audience", "value": "Families", "triggers": ["families", "family"]},
        {"label": "Target Audience", "value": "Small Businesses", "triggers": ["small business"]},
        {"label": "Target Audience", "value": "Seniors", "triggers": ["seniors", "retirees"]},
    ],
    "5k": [
        {"label": "Resources", "value": "Licensing", "triggers": ["license", "licensing", "licensed", "certification"]},
        {"label": "Technology", "value": "CRM Software", "triggers": ["crm"]},
        {"label": "Partnerships", "value": "Networking", "triggers": ["networking", "referral", "partnership"]},
        {"label": "Marketing", "value": "Digital Marketing", "triggers": ["social media", "marketing", "advertising"]},
        {"label": "Resources", "value": "Funding", "triggers": ["budget", "funding", "capital", "investment"]},
        {"label": "Revenue Model", "value": "Subscription", "triggers": ["subscription", "recurring"]},
        {"label": "Revenue Model", "value": "Commission", "triggers": ["commission"]},
        {"label": "Timeline", "value": "Defined Timeline", "triggers": ["timeline", "within 6 months", "this year"]},
    ],
}

# =============================================================================
# Execution playbooks (5k output)
# =============================================================================

# Checked in order against the most specific branch; "generic" always matches
EXECUTION_PLAYBOOKS: list[dict[str, Any]] = [
    {
        "id": "insurance",
        "keywords": ["insurance"],
        "immediate_actions": [
            "Research state insurance licensing requirements",
            "Enroll in a pre-licensing course for your line of authority",
            "Schedule the state licensing exam",
            "Compare independent and captive agency appointments",
        ],
        "success_metrics": [
            "License obtained",
            "Carrier appointments secured",
            "First 10 policies written",
            "Monthly premium volume",
        ],
        "resources_needed": [
            "Pre-licensing course",
            "Exam and licensing fees",
            "Errors & omissions insurance",
            "CRM for leads and policies",
        ],
    },
    {
        "id": "real_estate",
        "keywords": ["real estate", "residential", "property"],
        "immediate_actions": [
            "Complete the required pre-licensing education hours",
            "Pass the state real estate exam",
            "Interview sponsoring brokerages",
            "Build a list of prospects in your target neighbourhood",
        ],
        "success_metrics": [
            "License active",
            "First listing signed",
            "Closed transactions per quarter",
            "Referral rate",
        ],
        "resources_needed": [
            "Licensing course and exam fees",
            "Brokerage sponsorship",
            "MLS access",
            "Marketing budget",
        ],
    },
    {
        "id": "technology",
        "keywords": ["technology", "software", "app", "web application"],
        "immediate_actions": [
            "Write a one-page problem statement and MVP scope",
            "Interview five potential users",
            "Prototype the core workflow",
            "Choose the initial technology stack",
        ],
        "success_metrics": [
            "MVP shipped",
            "Weekly active users",
            "User retention after 30 days",
            "First paying customer",
        ],
        "resources_needed": [
            "Development time",
            "Hosting and tooling budget",
            "Design support",
            "Early adopter group",
        ],
    },
    {
        "id": "generic",
        "keywords": [],
        "immediate_actions": [
            "Define the single most important outcome",
            "List the skills and resources you already have",
            "Identify the first milestone and its deadline",
            "Talk to three people already doing this",
        ],
        "success_metrics": [
            "First milestone reached on time",
            "Weekly progress review completed",
            "Feedback collected from target audience",
        ],
        "resources_needed": [
            "Dedicated weekly time block",
            "Starter budget",
            "Mentor or peer group",
        ],
    },
]

EXECUTION_TIMELINE = [
    {"phase": "Foundation", "duration": "Weeks 1-2", "focus": "Research requirements and commit to the plan"},
    {"phase": "Preparation", "duration": "Weeks 3-6", "focus": "Acquire skills, licenses, and tools"},
    {"phase": "Launch", "duration": "Weeks 7-10", "focus": "Start operating and reach first customers"},
    {"phase": "Growth", "duration": "Weeks 11+", "focus": "Measure results and scale what works"},
]


# =============================================================================
# Blueprint construction
# =============================================================================


def _layer_vocabulary(altitude: str) -> dict[str, Any]:
    return {
        "indicators": ALTITUDE_INDICATORS[altitude],
        "branch_rules": ALTITUDE_BRANCH_RULES[altitude],
        "signals": COMMON_SIGNALS + [ALTITUDE_DOMAIN_SIGNALS[altitude]],
        "thresholds": ALTITUDE_THRESHOLDS[altitude],
    }


def altitude_blueprint(domain: str = "general") -> dict[str, Any]:
    """Blueprint for the altitude sequence, optionally flavoured for a domain.

    Raises:
        ValueError: If the domain is unknown.
    """
    if domain not in ALTITUDE_DOMAINS:
        raise ValueError(f"Unknown altitude domain: {domain}")

    overrides = ALTITUDE_DOMAINS[domain]
    layers = []
    for altitude in ALTITUDES:
        layer = dict(ALTITUDE_LAYERS[altitude], id=altitude)
        if altitude in overrides:
            focus, questions = overrides[altitude]
            layer["focus"] = focus
            layer["questions"] = questions
        layer["vocabulary"] = _layer_vocabulary(altitude)
        layers.append(layer)

    name = ALTITUDE_NAME if domain == "general" else f"{ALTITUDE_NAME} ({domain.title()})"
    return {
        "name": name,
        "description": ALTITUDE_DESCRIPTION,
        "layers": layers,
        "outputFormat": {"type": "execution_plan"},
    }


def create_altitude_template(domain: str = "general") -> LayerSequence:
    return create_template_from_blueprint(altitude_blueprint(domain))
