"""
Local heuristic content analyzer.

Infers topic, content type, age, sentiment, readability, themes, keywords,
link purpose and image purpose from a ParsedDocument using lexical rules
only: no network access, no statistical models, same output for the same
document every time.

The long classification chains (content type, link category, link
importance, image purpose, image context) are ordered rule tables of
(label, predicate) pairs evaluated top to bottom; the first predicate that
holds decides the label.

Pipeline position: runs on the same ParsedDocument as the Extractor.
Input:  ParsedDocument + ScrapeOptions + page URL
Output: Enrichment (metadata?, content?, links?, images?)
"""

import re
from collections import Counter
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlparse

from .document import Node, ParsedDocument
from .schemas import (
    ContentInsights,
    Enrichment,
    ImageInsight,
    LinkInsight,
    MetadataInsights,
    ScrapeOptions,
)
from .logger import get_module_logger

logger = get_module_logger("heuristics")

Rule = tuple[Any, Callable[..., bool]]


def first_match(rules: Sequence[Rule], *args, default: Any = None) -> Any:
    """Label of the first rule whose predicate holds for args, else default."""
    for label, predicate in rules:
        if predicate(*args):
            return label
    return default


# --- Word lists ---

KEY_TERM_STOPWORDS = frozenset([
    'the', 'and', 'a', 'an', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'by', 'as', 'is', 'are', 'was', 'were', 'be', 'this', 'that', 'it',
    'or', 'not', 'but', 'what', 'which', 'who', 'whom', 'whose', 'when',
    'where', 'why', 'how', 'all', 'any', 'both', 'each', 'few', 'more',
    'most', 'some', 'such', 'than', 'too', 'very', 'can', 'will', 'just',
    'should', 'now',
])

KEYWORD_STOPWORDS = KEY_TERM_STOPWORDS | frozenset([
    'from', 'about', 'would', 'could', 'their', 'they', 'them', 'these',
    'those', 'then', 'your', 'our', 'we', 'us',
])

PHRASE_STOPWORDS = frozenset([
    'the', 'and', 'a', 'an', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
])

POSITIVE_WORDS = [
    'good', 'great', 'best', 'excellent', 'amazing', 'wonderful', 'fantastic',
    'love', 'happy', 'positive', 'beautiful', 'outstanding', 'perfect', 'easy',
    'helpful', 'useful', 'recommend', 'awesome', 'incredible', 'enjoy', 'benefit',
]

NEGATIVE_WORDS = [
    'bad', 'worst', 'terrible', 'awful', 'horrible', 'poor', 'negative',
    'difficult', 'hard', 'complaint', 'issue', 'problem', 'hate', 'dislike',
    'disappointing', 'expensive', 'failed', 'broken', 'avoid', 'waste', 'unfortunately',
]

SOCIAL_DOMAINS = ['facebook.com', 'twitter.com', 'instagram.com', 'linkedin.com']
VIDEO_DOMAINS = ['youtube.com', 'vimeo.com']

# --- Patterns ---

PUNCTUATION_PATTERN = re.compile(r'[^\w\s]')
TITLE_SUFFIX_PATTERN = re.compile(r'[-|]\s*[^-|]*$')
CLAUSE_SPLIT_PATTERN = re.compile(r'[.,:;]')
SENTENCE_SPLIT_PATTERN = re.compile(r'[.!?]+')
ALNUM_PATTERN = re.compile(r'[a-z0-9]', re.IGNORECASE)
BULLET_PATTERN = re.compile(r'^[-*•]')
COPYRIGHT_PATTERN = re.compile(
    r'(?:©|copyright|copy;)\s*(?:\d{4}[-–—])?(\d{4})', re.IGNORECASE)
DOWNLOAD_PATTERN = re.compile(
    r'\.(pdf|doc|docx|xls|xlsx|csv|txt|zip|rar)$', re.IGNORECASE)
SENTIMENT_PATTERNS = {
    word: re.compile(rf'\b{word}\b', re.IGNORECASE)
    for word in POSITIVE_WORDS + NEGATIVE_WORDS
}

HEADING_SELECTOR = 'h1, h2, h3, h4, h5, h6'
TEXT_BLOCK_SELECTOR = 'p, ' + HEADING_SELECTOR

# Formats tried after ISO 8601 when reading dates out of markup
DATE_FORMATS = ['%B %d, %Y', '%b %d, %Y', '%d %B %Y', '%d %b %Y', '%Y/%m/%d', '%m/%d/%Y']


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, split on whitespace."""
    return PUNCTUATION_PATTERN.sub('', text.lower()).split()


def top_by_frequency(tokens: list[str], count: int) -> list[str]:
    """Most frequent tokens; ties keep first-encountered order."""
    frequencies = Counter(tokens)
    ranked = sorted(frequencies.items(), key=lambda item: -item[1])
    return [token for token, _ in ranked[:count]]


def parse_date(value: str) -> Optional[date]:
    """Parse a date string from markup; None when no known format matches."""
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: date) -> str:
    """M/D/YYYY."""
    return f"{value.month}/{value.day}/{value.year}"


# --- Metadata insights ---

def extract_main_topic(doc: ParsedDocument) -> str:
    h1 = doc.select_one('h1')
    if h1 is not None and len(h1.text) > 5:
        return h1.text

    title = doc.title_text()
    if title:
        # Drop a trailing " - Site Name" / " | Site Name"
        topic = TITLE_SUFFIX_PATTERN.sub('', title, count=1).strip()
        if topic:
            return topic

    description = doc.attr('meta[name="description"]', 'content')
    if description:
        for clause in CLAUSE_SPLIT_PATTERN.split(description):
            if len(clause.strip()) > 10:
                return clause.strip()

    return "Unknown Topic"


# --- Content type rules ---

def looks_like_product(doc: ParsedDocument) -> bool:
    return (
        doc.exists('.product, #product, [itemtype*="Product"]')
        or 'add to cart' in doc.body_text().lower()
        or any('Buy' in button.text for button in doc.select('button'))
    )


def looks_like_article(doc: ParsedDocument) -> bool:
    return (
        doc.exists('article, .post, .blog, [itemtype*="Article"]')
        or (doc.exists('time') and doc.count('p') > 5)
    )


def looks_like_contact(doc: ParsedDocument) -> bool:
    return (
        doc.exists('form')
        and doc.exists('input[type="email"], input[name*="email"]')
        and doc.exists('textarea, input[name*="message"]')
    )


def looks_like_homepage(doc: ParsedDocument) -> bool:
    body = doc.body
    if body is not None and ('home' in body.get('id') or 'home' in body.get('class')):
        return True
    return doc.exists('nav') and doc.count('section') > 2


def looks_like_about(doc: ParsedDocument) -> bool:
    return (
        any('About' in h1.text for h1 in doc.select('h1'))
        or 'About' in doc.title_text()
        or doc.exists('.about, #about')
    )


CONTENT_TYPE_RULES: list[Rule] = [
    ('Product Page', looks_like_product),
    ('Article/Blog', looks_like_article),
    ('Contact Page', looks_like_contact),
    ('Homepage', looks_like_homepage),
    ('About Page', looks_like_about),
]


def detect_content_type(doc: ParsedDocument) -> str:
    return first_match(CONTENT_TYPE_RULES, doc, default='General Web Page')


def estimate_content_age(doc: ParsedDocument, today: Optional[date] = None) -> str:
    """
    Estimate content age from, in order: article:published_time meta, the
    first time[datetime] element, a copyright year in the footer.

    Unparseable dates fall through to the next source.
    """
    today = today or date.today()

    published = doc.attr('meta[property="article:published_time"]', 'content')
    if published:
        parsed = parse_date(published)
        if parsed:
            return f"Published on {format_date(parsed)}"

    updated = doc.attr('time[datetime]', 'datetime')
    if updated:
        parsed = parse_date(updated)
        if parsed:
            return f"Last updated {format_date(parsed)}"

    match = COPYRIGHT_PATTERN.search(doc.text('footer'))
    if match:
        year = int(match.group(1))
        if year == today.year:
            return f"Updated this year ({year})"
        return f"Last copyright year: {year}"

    return "Age unknown"


def extract_key_terms(doc: ParsedDocument, count: int = 10) -> list[str]:
    words = [
        w for w in tokenize(doc.body_text())
        if len(w) > 3 and w not in KEY_TERM_STOPWORDS
    ]
    return top_by_frequency(words, count)


def analyze_sentiment(doc: ParsedDocument) -> str:
    text = doc.body_text().lower()

    positive = sum(len(SENTIMENT_PATTERNS[w].findall(text)) for w in POSITIVE_WORDS)
    negative = sum(len(SENTIMENT_PATTERNS[w].findall(text)) for w in NEGATIVE_WORDS)

    total = positive + negative
    if total == 0:
        return "Neutral"

    score = (positive - negative) / total
    if score > 0.25:
        return "Positive"
    if score < -0.25:
        return "Negative"
    return "Neutral"


def estimate_readability(doc: ParsedDocument) -> str:
    total_words = 0
    total_sentences = 0
    complex_words = 0  # Long words stand in for 3+ syllables

    for paragraph in doc.select('p'):
        text = paragraph.text
        if not text:
            continue

        sentences = [s for s in SENTENCE_SPLIT_PATTERN.split(text) if s.strip()]
        total_sentences += len(sentences)

        words = [w for w in text.split() if ALNUM_PATTERN.search(w)]
        total_words += len(words)
        complex_words += sum(1 for w in words if len(w) > 9)

    if total_sentences == 0 or total_words == 0:
        return "Unknown readability"

    words_per_sentence = total_words / total_sentences
    percent_complex = complex_words / total_words * 100

    if words_per_sentence > 20 or percent_complex > 15:
        return "Academic/Advanced"
    if words_per_sentence > 14 or percent_complex > 10:
        return "Intermediate"
    return "Easy to read"


# --- Content insights ---

def generate_summary(doc: ParsedDocument) -> str:
    for paragraph in doc.select('p'):
        if 50 < len(paragraph.text) < 300:
            return paragraph.text

    title = doc.title_text()
    description = doc.attr('meta[name="description"]', 'content') or ''
    if title and description:
        return f"{title} - {description}"

    body_text = ' '.join(doc.body_text().split())
    if len(body_text) > 250:
        return body_text[:250] + '...'
    return body_text


def identify_themes(doc: ParsedDocument, limit: int = 5) -> list[str]:
    themes: dict[str, None] = {}  # Ordered set

    for heading in doc.select('h1, h2, h3'):
        if 3 < len(heading.text) < 60:
            themes[heading.text] = None

    for emphasis in doc.select('strong, b'):
        if 3 < len(emphasis.text) < 40:
            themes[emphasis.text] = None

    # Items of short lists are often key points
    seen_items: set[Node] = set()
    for lst in doc.select('ul, ol'):
        if not 1 < len(lst.children('li')) < 6:
            continue
        for item in lst.select('li'):
            if item in seen_items:
                continue
            seen_items.add(item)
            if 5 < len(item.text) < 100:
                themes[BULLET_PATTERN.sub('', item.text).strip()] = None

    return list(themes)[:limit]


def extract_top_keywords(doc: ParsedDocument, count: int = 10) -> list[str]:
    words = [
        w for w in tokenize(doc.body_text())
        if len(w) > 3 and w not in KEYWORD_STOPWORDS and not w.isdigit()
    ]
    return top_by_frequency(words, count)


def extract_key_phrases(doc: ParsedDocument, limit: int = 5) -> list[str]:
    """Repeated 2- and 3-word sequences, most frequent first."""
    words = [w for w in tokenize(doc.body_text()) if len(w) > 2]
    phrases: Counter = Counter()

    for i in range(len(words) - 1):
        if words[i] in PHRASE_STOPWORDS:
            continue

        bigram = f"{words[i]} {words[i + 1]}"
        if len(bigram) > 5:
            phrases[bigram] += 1

        if i < len(words) - 2 and words[i + 1] not in PHRASE_STOPWORDS:
            trigram = f"{words[i]} {words[i + 1]} {words[i + 2]}"
            if len(trigram) > 8:
                phrases[trigram] += 1

    repeated = [(phrase, n) for phrase, n in phrases.items() if n > 1]
    repeated.sort(key=lambda item: -item[1])
    return [phrase for phrase, _ in repeated[:limit]]


def estimate_content_quality(doc: ParsedDocument) -> str:
    score = 0

    word_count = len(doc.body_text().split())
    if word_count > 1000:
        score += 2
    elif word_count > 500:
        score += 1

    if doc.count('h1, h2, h3') > 3:
        score += 1
    if doc.count('ul, ol') > 2:
        score += 1
    if doc.count('img') > 2:
        score += 1
    if doc.exists('video, iframe[src*="youtube"]'):
        score += 1
    if doc.count('a[href^="http"]') > 3:
        score += 1
    if doc.count('strong, b, em, i') > 5:
        score += 1

    logger.debug(f"Content quality score: {score}")

    if score >= 7:
        return "Excellent"
    if score >= 5:
        return "Good"
    if score >= 3:
        return "Average"
    return "Basic"


# --- Links ---

# (type, category) from the shape of the href; predicates take (href, domain)
LINK_KIND_RULES: list[Rule] = [
    (('internal', 'anchor'), lambda href, domain: href.startswith('#')),
    (('internal', 'navigation'),
     lambda href, domain: href.startswith('/') or bool(domain and domain in href)),
    (('external', 'reference'), lambda href, domain: href.startswith('http')),
    (('external', 'contact'), lambda href, domain: href.startswith('mailto:')),
]

# Refinements; predicates take (href, text)
INTERNAL_CATEGORY_RULES: list[Rule] = [
    ('download', lambda href, text: bool(DOWNLOAD_PATTERN.search(href))),
    ('information', lambda href, text: 'contact' in href or 'about' in href),
    ('product', lambda href, text: any(k in href for k in ('product', 'shop', 'buy'))),
    ('content', lambda href, text: any(k in href for k in ('blog', 'article', 'post', 'news'))),
]

EXTERNAL_CATEGORY_RULES: list[Rule] = [
    ('social', lambda href, text: any(d in href for d in SOCIAL_DOMAINS)),
    ('media', lambda href, text: any(d in href for d in VIDEO_DOMAINS)),
    ('download', lambda href, text: bool(DOWNLOAD_PATTERN.search(href))),
    ('authentication', lambda href, text: 'login' in text.lower() or 'sign in' in text.lower()),
]


def looks_like_button(node: Node) -> bool:
    return (
        node.has_class('button')
        or node.style('display') == 'block'
        or bool(node.style('padding'))
        or bool(node.style('background-color'))
    )


LINK_IMPORTANCE_RULES: list[Rule] = [
    ('Primary Navigation', lambda node: node.has_ancestor('nav, header')),
    ('Call to Action', looks_like_button),
    ('Footer Link', lambda node: node.has_ancestor('footer')),
    ('Content Link', lambda node: node.has_ancestor('article, main, .content, #content')),
    ('Visual Link', lambda node: bool(node.select('img'))),
]


def categorize_link(href: str, text: str, domain: str) -> tuple[str, str]:
    """(type, category) for one href."""
    link_type, category = first_match(LINK_KIND_RULES, href, domain, default=('unknown', 'other'))

    if link_type == 'internal':
        category = first_match(INTERNAL_CATEGORY_RULES, href, text, default=category)
    elif link_type == 'external':
        category = first_match(EXTERNAL_CATEGORY_RULES, href, text, default=category)

    return link_type, category


def estimate_link_importance(node: Node) -> str:
    return first_match(LINK_IMPORTANCE_RULES, node, default='Standard Link')


def categorize_links(doc: ParsedDocument, base_url: str) -> list[LinkInsight]:
    try:
        domain = urlparse(base_url).hostname or ''
    except ValueError:
        domain = ''
    insights = []

    for node in doc.select('a[href]'):
        href = node.get('href')
        if not href:
            continue

        _, category = categorize_link(href, node.text, domain)
        insights.append(LinkInsight(
            url=href,
            category=category,
            importance=estimate_link_importance(node),
        ))

    return insights


# --- Images ---

def _src(node: Node) -> str:
    return node.get('src').lower()


def _alt(node: Node) -> str:
    return node.get('alt').lower()


def is_product_image(node: Node) -> bool:
    return node.has_ancestor('[itemtype*="Product"], .product') or 'product' in _alt(node)


def is_hero_image(node: Node) -> bool:
    width = node.int_attr('width')
    parent = node.parent
    return (
        node.closest('header') is not None
        or bool(width and width > 800)
        or bool(parent and parent.has_class('hero'))
        or node.has_class('banner')
        or node.has_ancestor('.banner, .hero, .jumbotron')
    )


def is_icon(node: Node) -> bool:
    width = node.int_attr('width')
    height = node.int_attr('height')
    return (
        bool(width and width < 50 and height and height < 50)
        or 'icon' in node.get('src')
        or 'icon' in node.get('alt')
        or node.has_class('icon')
    )


def is_decorative(node: Node) -> bool:
    if not node.get('alt'):
        return True
    parent = node.parent
    return parent is not None and (
        bool(parent.style('background-image')) or parent.style('z-index') == '-1'
    )


def is_content_image(node: Node) -> bool:
    return node.has_ancestor('article, .content, #content, main') or node.has_ancestor('p, figure')


def is_logo(node: Node) -> bool:
    link = node.closest('a')
    return (
        'logo' in _src(node)
        or 'logo' in _alt(node)
        or node.has_class('logo')
        or (link is not None and link.get('href') == '/')
    )


def is_avatar(node: Node) -> bool:
    return (
        any(k in _src(node) for k in ('avatar', 'profile'))
        or any(k in _alt(node) for k in ('avatar', 'profile'))
        or node.has_class('avatar')
        or node.has_class('profile')
    )


# (purpose, importance)
IMAGE_PURPOSE_RULES: list[Rule] = [
    (('Product Image', 'High'), is_product_image),
    (('Hero/Banner Image', 'High'), is_hero_image),
    (('Icon', 'Low'), is_icon),
    (('Decorative', 'Low'), is_decorative),
    (('Content Image', 'Medium'), is_content_image),
    (('Logo', 'High'), is_logo),
    (('Avatar/Profile', 'Medium'), is_avatar),
]


def has_adjacent_text(node: Node) -> bool:
    for sibling in (node.previous_element, node.next_element):
        if sibling is not None and sibling.matches(TEXT_BLOCK_SELECTOR) and sibling.text:
            return True
    return False


def _parent_has(node: Node, predicate: Callable[[Node], bool]) -> bool:
    parent = node.parent
    return parent is not None and predicate(parent)


IMAGE_CONTEXT_RULES: list[Rule] = [
    ('Header', lambda node: node.has_ancestor('header')),
    ('Footer', lambda node: node.has_ancestor('footer')),
    ('Sidebar', lambda node: node.has_ancestor('aside, .sidebar')),
    ('Article', lambda node: node.has_ancestor('article')),
    ('Navigation', lambda node: node.has_ancestor('nav')),
    ('Illustration for adjacent text', has_adjacent_text),
    ('Section visual', lambda node: _parent_has(node, lambda p: bool(p.select(HEADING_SELECTOR)))),
    ('Linked image', lambda node: _parent_has(node, lambda p: p.name == 'a')),
    ('Embedded in text', lambda node: _parent_has(node, lambda p: bool(p.own_text))),
]


def classify_image(node: Node) -> tuple[str, str]:
    """(purpose, importance) for one image."""
    return first_match(IMAGE_PURPOSE_RULES, node, default=('Unknown', 'Low'))


def determine_image_context(node: Node) -> str:
    return first_match(IMAGE_CONTEXT_RULES, node, default='Standalone image')


def analyze_images(doc: ParsedDocument) -> list[ImageInsight]:
    insights = []

    for node in doc.select('img'):
        src = node.get('src')
        if not src:
            continue

        purpose, importance = classify_image(node)
        insights.append(ImageInsight(
            src=src,
            purpose=purpose,
            importance=importance,
            context=determine_image_context(node),
        ))

    return insights


# --- Analyzer ---

class HeuristicAnalyzer:
    """Rule-based analyzer producing a partial enrichment without any service."""

    def __init__(self, keyword_count: int = 10):
        self.keyword_count = keyword_count

    def analyze(self, doc: ParsedDocument, options: ScrapeOptions, base_url: str) -> Enrichment:
        """
        Analyze every enabled section of a parsed document.

        Args:
            doc: Parsed document
            options: Section toggles
            base_url: URL the markup was fetched from (used for link domains)

        Returns:
            Enrichment; disabled sections are None
        """
        logger.info("Running heuristic analysis")
        enrichment = Enrichment()

        if options.parse_metadata:
            enrichment.metadata = self.analyze_metadata(doc)
        if options.parse_content:
            enrichment.content = self.analyze_content(doc)
        if options.parse_links:
            enrichment.links = categorize_links(doc, base_url)
        if options.parse_images:
            enrichment.images = analyze_images(doc)

        return enrichment

    def analyze_metadata(self, doc: ParsedDocument) -> MetadataInsights:
        insights = MetadataInsights(
            main_topic=extract_main_topic(doc),
            content_type=detect_content_type(doc),
            estimated_age=estimate_content_age(doc),
            key_terms=extract_key_terms(doc),
            sentiment=analyze_sentiment(doc),
            estimated_readability=estimate_readability(doc),
        )
        logger.debug(f"Content type: {insights.content_type}, topic: {insights.main_topic}")
        return insights

    def analyze_content(self, doc: ParsedDocument) -> ContentInsights:
        return ContentInsights(
            summary=generate_summary(doc),
            main_themes=identify_themes(doc),
            top_keywords=extract_top_keywords(doc, self.keyword_count),
            key_phrases=extract_key_phrases(doc),
            estimated_quality=estimate_content_quality(doc),
        )


def analyze(doc: ParsedDocument, options: Optional[ScrapeOptions] = None,
            base_url: str = "") -> Enrichment:
    """Convenience function to run the heuristic analyzer."""
    return HeuristicAnalyzer().analyze(doc, options or ScrapeOptions(), base_url)
