"""
Language-specific prompt building for review generation.

Each language carries its own system prompt, style variants and labels so
the model is instructed natively instead of being asked to translate.
"""
from dataclasses import dataclass

DEFAULT_LANG = "zh"


@dataclass(frozen=True)
class LanguagePack:
    system: tuple[str, ...]
    flavors: tuple[str, ...]
    store_name: str
    store_id: str
    tags: str
    cons: str
    none: str
    separator: str
    variant: str
    length: str              # formatted with min_chars / max_chars
    output_only: str
    avoid_previous: str      # formatted with excerpt


LANGUAGES: dict[str, LanguagePack] = {
    "zh": LanguagePack(
        system=(
            "你是專業在地向導，專長是把顧客體驗濃縮成『自然、可信、短小精悍的繁體中文評論』。",
            "輸出限制：只寫 1–2 句，避免列點、避免 emoji、避免 hashtag、避免誇飾用語濫用與多個驚嘆號。",
            "要點：加入一個具體感官細節（口感、香氣、溫度、份量、動線等）或小情境（點餐、上桌、座位、排隊）。",
            "請避免千篇一律的句型（例如「讓我忍不住…」「真的很…」「超級…」等口頭禪）。",
            "若有「可改進之處」，請用委婉、具建設性的語氣帶過一句，不要否定整體體驗。",
            "若有指定長度上下限，盡可能控制在該字數範圍內（以中文字數估計即可）。",
        ),
        flavors=(
            "語氣自然親切、像在對朋友分享。",
            "語氣精簡俐落、重點清楚、不拖泥帶水。",
            "語氣溫暖帶感官，微微描寫香氣或口感。",
            "語氣中性理性，避免過度主觀形容。",
            "加入一個細小具體情境（如排隊、店內座位、端上桌瞬間）。",
        ),
        store_name="店名",
        store_id="店家代號",
        tags="重點標籤",
        cons="可改進之處",
        none="無",
        separator="、",
        variant="風格變體要求",
        length="長度要求：{min_chars}–{max_chars} 字（繁體中文）。",
        output_only="請輸出最終短評文字本身，不要前後加任何說明。",
        avoid_previous="請避免與這則既有評論的開頭或句型相似：「{excerpt}」，換一個切入點來寫。",
    ),
    "en": LanguagePack(
        system=(
            "You are a local guide who condenses customer experiences into natural, believable, short English reviews.",
            "Constraints: write 1-2 sentences only. No bullet points, emoji, hashtags, hype words or multiple exclamation marks.",
            "Include one concrete sensory detail (texture, aroma, temperature, portion) or a small moment (ordering, seating, the dish arriving).",
            "Avoid stock phrases such as \"I couldn't resist\", \"absolutely amazing\" or \"a must-try\".",
            "If there are points to improve, mention one gently and constructively without undermining the overall experience.",
            "Keep within the requested length range as closely as you can.",
        ),
        flavors=(
            "Friendly and natural, like telling a friend.",
            "Crisp and to the point.",
            "Warm and sensory, lightly describing aroma or texture.",
            "Neutral and measured, avoiding strong subjective adjectives.",
            "Add one small concrete scene (the queue, the seat, the moment the dish arrives).",
        ),
        store_name="Store name",
        store_id="Store ID",
        tags="Key tags",
        cons="Could improve",
        none="none",
        separator=", ",
        variant="Style",
        length="Length: {min_chars}-{max_chars} characters.",
        output_only="Output only the review text, with no preamble or explanation.",
        avoid_previous="Do not reuse the opening or sentence pattern of this existing review: \"{excerpt}\". Take a different angle.",
    ),
    "ja": LanguagePack(
        system=(
            "あなたは地元に詳しいガイドで、お客様の体験を自然で信頼できる短い日本語の口コミにまとめるのが得意です。",
            "制約：1〜2文のみ。箇条書き、絵文字、ハッシュタグ、誇張表現、複数の感嘆符は使わないでください。",
            "食感・香り・温度・量などの具体的な感覚、または注文・着席・料理が届く瞬間などの小さな場面を一つ入れてください。",
            "「思わず…」「本当に…」「最高…」のような決まり文句は避けてください。",
            "改善点がある場合は、全体の印象を損なわないよう穏やかに一言添えてください。",
            "指定された文字数の範囲にできるだけ収めてください。",
        ),
        flavors=(
            "友人に話すような自然で親しみやすい口調。",
            "簡潔で要点がはっきりした口調。",
            "香りや食感に少し触れる、温かみのある口調。",
            "主観的な形容を控えた落ち着いた口調。",
            "行列、席、料理が運ばれた瞬間など小さな具体的場面を入れる。",
        ),
        store_name="店名",
        store_id="店舗コード",
        tags="ポイント",
        cons="改善してほしい点",
        none="なし",
        separator="、",
        variant="文体",
        length="文字数：{min_chars}〜{max_chars}文字。",
        output_only="口コミ本文のみを出力し、前後に説明を付けないでください。",
        avoid_previous="次の既存の口コミと書き出しや文型が似ないようにしてください：「{excerpt}」。別の切り口で書いてください。",
    ),
    "ko": LanguagePack(
        system=(
            "당신은 지역을 잘 아는 가이드로, 손님의 경험을 자연스럽고 믿을 만한 짧은 한국어 리뷰로 정리하는 데 능숙합니다.",
            "제약: 1~2문장만 작성하세요. 글머리표, 이모지, 해시태그, 과장된 표현, 여러 개의 느낌표는 피하세요.",
            "식감, 향, 온도, 양 같은 구체적인 감각이나 주문, 자리, 음식이 나오는 순간 같은 작은 장면을 하나 넣으세요.",
            "\"너무…\", \"진짜…\", \"완전…\" 같은 상투적인 표현은 피하세요.",
            "아쉬운 점이 있다면 전체 경험을 해치지 않도록 부드럽게 한마디만 덧붙이세요.",
            "요청한 글자 수 범위에 최대한 맞추세요.",
        ),
        flavors=(
            "친구에게 이야기하듯 자연스럽고 친근하게.",
            "간결하고 핵심만 분명하게.",
            "향이나 식감을 살짝 묘사하는 따뜻한 어조로.",
            "주관적인 수식어를 줄인 차분한 어조로.",
            "줄 서기, 좌석, 음식이 나오는 순간 같은 작은 장면을 하나 넣어서.",
        ),
        store_name="가게 이름",
        store_id="가게 코드",
        tags="핵심 태그",
        cons="아쉬운 점",
        none="없음",
        separator=", ",
        variant="문체",
        length="길이: {min_chars}~{max_chars}자.",
        output_only="리뷰 본문만 출력하고 앞뒤에 설명을 붙이지 마세요.",
        avoid_previous="다음 기존 리뷰와 시작 부분이나 문장 구조가 비슷하지 않게 하세요: \"{excerpt}\". 다른 관점에서 써 주세요.",
    ),
    "fr": LanguagePack(
        system=(
            "Vous êtes un guide local qui résume l'expérience des clients en avis courts, naturels et crédibles en français.",
            "Contraintes : 1 à 2 phrases seulement. Pas de listes, d'emoji, de hashtags, d'exagérations ni de points d'exclamation multiples.",
            "Ajoutez un détail sensoriel concret (texture, arôme, température, portion) ou une petite scène (commande, place assise, arrivée du plat).",
            "Évitez les formules toutes faites comme « un vrai régal » ou « à tester absolument ».",
            "S'il y a un point à améliorer, mentionnez-le avec tact sans remettre en cause l'expérience globale.",
            "Respectez au mieux la longueur demandée.",
        ),
        flavors=(
            "Ton naturel et amical, comme à un ami.",
            "Ton concis et précis.",
            "Ton chaleureux et sensoriel, évoquant légèrement l'arôme ou la texture.",
            "Ton neutre et mesuré, sans adjectifs trop subjectifs.",
            "Ajoutez une petite scène concrète (la file d'attente, la place, l'arrivée du plat).",
        ),
        store_name="Nom de l'établissement",
        store_id="Identifiant",
        tags="Points clés",
        cons="À améliorer",
        none="aucun",
        separator=", ",
        variant="Style",
        length="Longueur : {min_chars} à {max_chars} caractères.",
        output_only="Donnez uniquement le texte de l'avis, sans introduction ni explication.",
        avoid_previous="Ne reprenez pas le début ni la structure de cet avis existant : « {excerpt} ». Choisissez un autre angle.",
    ),
    "es": LanguagePack(
        system=(
            "Eres un guía local que resume la experiencia de los clientes en reseñas cortas, naturales y creíbles en español.",
            "Restricciones: solo 1 o 2 frases. Sin viñetas, emojis, hashtags, exageraciones ni varios signos de exclamación.",
            "Incluye un detalle sensorial concreto (textura, aroma, temperatura, porción) o una pequeña escena (pedir, sentarse, la llegada del plato).",
            "Evita frases hechas como \"una maravilla\" o \"imprescindible\".",
            "Si hay algo que mejorar, menciónalo con tacto sin restar valor a la experiencia general.",
            "Ajústate lo más posible a la longitud indicada.",
        ),
        flavors=(
            "Tono natural y cercano, como contándoselo a un amigo.",
            "Tono conciso y directo.",
            "Tono cálido y sensorial, describiendo levemente el aroma o la textura.",
            "Tono neutral y mesurado, sin adjetivos demasiado subjetivos.",
            "Añade una pequeña escena concreta (la fila, el asiento, el momento en que llega el plato).",
        ),
        store_name="Nombre del local",
        store_id="Código",
        tags="Puntos clave",
        cons="A mejorar",
        none="ninguno",
        separator=", ",
        variant="Estilo",
        length="Longitud: {min_chars}-{max_chars} caracteres.",
        output_only="Escribe solo el texto de la reseña, sin introducción ni explicación.",
        avoid_previous="No repitas el inicio ni la estructura de esta reseña existente: \"{excerpt}\". Busca otro enfoque.",
    ),
}

# Longest excerpt of a previous review quoted back in a steering hint
EXCERPT_CHARS = 40


def resolve_lang(lang: str | None) -> str:
    """Map a requested language to a supported one, defaulting to Traditional Chinese."""
    code = (lang or "").strip().lower()
    if code in ("cn", "zh-tw", "zh-hant", "tw"):
        code = "zh"
    return code if code in LANGUAGES else DEFAULT_LANG


def variant_flavor(variant, lang: str = DEFAULT_LANG) -> str:
    """Pick a style hint; variant wraps around the available styles."""
    flavors = LANGUAGES[resolve_lang(lang)].flavors
    try:
        index = abs(int(variant))
    except (TypeError, ValueError):
        index = 0
    return flavors[index % len(flavors)]


def build_system_prompt(lang: str) -> str:
    return "\n".join(LANGUAGES[resolve_lang(lang)].system)


def build_user_prompt(
    lang: str,
    store_name: str,
    store_id: str,
    tags: list[str],
    cons: list[str],
    variant,
    min_chars: int,
    max_chars: int,
    avoid_text: str | None = None,
) -> str:
    pack = LANGUAGES[resolve_lang(lang)]
    tags_line = pack.separator.join(tags) if tags else pack.none

    lines = [
        f"{pack.store_name}: {store_name}",
        f"{pack.store_id}: {store_id}",
        f"{pack.tags}: {tags_line}",
    ]
    if cons:
        lines.append(f"{pack.cons}: {pack.separator.join(cons)}")
    lines.append(f"{pack.variant}: {variant_flavor(variant, lang)}")
    lines.append(pack.length.format(min_chars=min_chars, max_chars=max_chars))
    if avoid_text:
        lines.append(steering_hint(lang, avoid_text))
    lines.append(pack.output_only)
    return "\n".join(lines)


def steering_hint(lang: str, previous_text: str) -> str:
    """Ask the model to move away from a too-similar stored review."""
    excerpt = " ".join((previous_text or "").split())
    if len(excerpt) > EXCERPT_CHARS:
        excerpt = excerpt[:EXCERPT_CHARS] + "…"
    return LANGUAGES[resolve_lang(lang)].avoid_previous.format(excerpt=excerpt)
