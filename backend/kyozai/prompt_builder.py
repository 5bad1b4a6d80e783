from __future__ import annotations
from typing import Dict, List, Sequence, Tuple

from .options import (
    BlankNumberPosition,
    BlankNumberType,
    BlankStyle,
    Difficulty,
    GenerationOptions,
    MaterialType,
    QuizType,
    material_label,
)


KEY_TERM_SEPARATOR = "、"

DIFFICULTY_LABELS: Dict[Difficulty, str] = {
    Difficulty.BEGINNER: "初級",
    Difficulty.INTERMEDIATE: "中級",
    Difficulty.ADVANCED: "上級",
}

DIFFICULTY_GUIDANCE: Dict[Difficulty, str] = {
    Difficulty.BEGINNER: "短く平易な文で書き、専門用語は必ず定義を先に示してから使ってください。",
    Difficulty.INTERMEDIATE: "用語の定義に加えて、理由や背景、概念どうしのつながりが分かるように書いてください。",
    Difficulty.ADVANCED: "比較・因果関係・複数の概念の統合を求める内容にし、応用的な思考を促してください。",
}

# (style, position) -> example shown to the model; {n} is the first blank label
BLANK_EXAMPLES: Dict[Tuple[BlankStyle, BlankNumberPosition], str] = {
    (BlankStyle.UNDERLINE, BlankNumberPosition.AFTER): "_____（{n}）",
    (BlankStyle.UNDERLINE, BlankNumberPosition.BEFORE): "（{n}）_____",
    (BlankStyle.UNDERLINE, BlankNumberPosition.ABOVE): "  {n}\n_____",
    (BlankStyle.BOX, BlankNumberPosition.AFTER): "□□□□□（{n}）",
    (BlankStyle.BOX, BlankNumberPosition.BEFORE): "（{n}）□□□□□",
    (BlankStyle.BOX, BlankNumberPosition.ABOVE): "  {n}\n□□□□□",
    (BlankStyle.PARENTHESES, BlankNumberPosition.AFTER): "（　　　　）（{n}）",
    (BlankStyle.PARENTHESES, BlankNumberPosition.BEFORE): "（{n}）（　　　　）",
    (BlankStyle.PARENTHESES, BlankNumberPosition.ABOVE): "  {n}\n（　　　　）",
}

BLANK_GLYPHS: Dict[BlankStyle, str] = {
    BlankStyle.UNDERLINE: "_____",
    BlankStyle.BOX: "□□□□□",
    BlankStyle.PARENTHESES: "（　　　　）",
}

BLANK_STYLE_LABELS: Dict[BlankStyle, str] = {
    BlankStyle.UNDERLINE: "下線",
    BlankStyle.BOX: "四角",
    BlankStyle.PARENTHESES: "かっこ",
}

BLANK_POSITION_LABELS: Dict[BlankNumberPosition, str] = {
    BlankNumberPosition.AFTER: "空欄の後",
    BlankNumberPosition.BEFORE: "空欄の前",
    BlankNumberPosition.ABOVE: "空欄の上",
}

BLANK_NUMBER_TYPE_LABELS: Dict[BlankNumberType, str] = {
    BlankNumberType.NUMERIC: "数字 (1, 2, 3...)",
    BlankNumberType.ALPHABETIC: "アルファベット (a, b, c...)",
    BlankNumberType.ROMAN: "ローマ数字 (i, ii, iii...)",
    BlankNumberType.NONE: "番号なし",
}

_FIRST_LABEL: Dict[BlankNumberType, str] = {
    BlankNumberType.NUMERIC: "1",
    BlankNumberType.ALPHABETIC: "a",
    BlankNumberType.ROMAN: "i",
}

QUIZ_INSTRUCTIONS: Dict[QuizType, str] = {
    QuizType.DESCRIPTIVE: "記述式問題のみを作成してください。各問題は、学習者が自分の言葉で回答できる形式にしてください。",
    QuizType.MULTIPLE_CHOICE: "5肢択一問題のみを作成してください。各問題には1〜5の5つの選択肢を用意し、その中から正解を1つ選ぶ形式にしてください。",
    QuizType.MIXED: "記述式問題と選択式問題を混合して作成してください。選択式問題には1〜5の5つの選択肢を用意してください。",
}

QUIZ_CHOICE_SKELETON: Dict[QuizType, str] = {
    QuizType.DESCRIPTIVE: "",
    QuizType.MULTIPLE_CHOICE: "1) [選択肢1]\n2) [選択肢2]\n3) [選択肢3]\n4) [選択肢4]\n5) [選択肢5]\n",
    QuizType.MIXED: "[選択式の場合は 1) 〜 5) の選択肢を記載]\n",
}

BASE_INSTRUCTIONS = """あなたは教育専門家であり、教材作成のエキスパートです。
以下の制約を必ず守ってください。
- 出力は日本語のみとし、英語の文章、内部的な思考過程、前置きや説明（メタコメント）を一切含めないでください。
- 出力は教材本文のみとし、最初の行は「# 」で始まるタイトル行にしてください。
- 内容は与えられたテキストに忠実に作成し、テキストにない事実を創作しないでください。
- 見出しは「#」「##」、項目は「1.」「2.」のような番号付きリストや「- 」の箇条書きで表してください。
- 難易度「{difficulty}」: {guidance}
"""


def difficulty_guidance(difficulty: Difficulty) -> str:
    return DIFFICULTY_GUIDANCE[difficulty]


def blank_label(number_type: BlankNumberType) -> str:
    return _FIRST_LABEL.get(number_type, "")


def blank_example(options: GenerationOptions) -> str:
    """Literal blank rendering shown to the model for the chosen style and numbering."""
    template = BLANK_EXAMPLES[(options.blank_style, options.blank_number_position)]
    label = blank_label(options.blank_number_type)
    if not label:
        return BLANK_GLYPHS[options.blank_style]
    return template.format(n=label)


def format_key_terms(terms: Sequence[str]) -> str:
    return KEY_TERM_SEPARATOR.join(terms)


def _context_block(text: str, options: GenerationOptions) -> str:
    lines = [
        "テキスト:",
        text,
        "",
        f"タイトル: {options.title}",
        f"難易度: {DIFFICULTY_LABELS[options.difficulty]}",
        f"科目領域: {options.subject_area}",
    ]
    if options.key_terms:
        lines.append(f"重要用語（必ず扱ってください）: {format_key_terms(options.key_terms)}")
    return "\n".join(lines)


def _fill_in_blank_template(options: GenerationOptions) -> str:
    return (
        "以下のテキストから穴埋め問題を作成してください。\n"
        "重要な用語や概念を空欄にして、学習者が理解度を確認できるようにしてください。\n"
        f"問題数: {options.question_count}問（空欄は合計{options.question_count}個以上）\n\n"
        "空欄の形式は次のように設定してください：\n"
        f"- 番号タイプ: {BLANK_NUMBER_TYPE_LABELS[options.blank_number_type]}\n"
        f"- 番号位置: {BLANK_POSITION_LABELS[options.blank_number_position]}\n"
        f"- 空欄スタイル: {BLANK_STYLE_LABELS[options.blank_style]}\n\n"
        f"例: {blank_example(options)}\n\n"
        "{context}\n\n"
        "出力形式:\n"
        "# [タイトル] - 穴埋めプリント\n\n"
        "以下の文章の空欄に適切な言葉を入れなさい。\n\n"
        "1. [穴埋め問題1]\n"
        "2. [穴埋め問題2]\n"
        "...\n\n"
        "解答:\n"
        "1. [解答1]\n"
        "2. [解答2]\n"
        "...\n\n"
        "必ず指示された空欄の形式に従ってください。"
    )


def _summary_template(options: GenerationOptions) -> str:
    return (
        "以下のテキストの重要なポイントをまとめたシートを作成してください。\n"
        "見出しと箇条書きを使って、内容を整理してください。\n"
        f"セクション数: {options.section_count}\n\n"
        "{context}\n\n"
        "出力形式:\n"
        "# [タイトル] - まとめシート\n\n"
        "## 1. [セクション1のタイトル]\n"
        "- [ポイント1]\n"
        "- [ポイント2]\n"
        "...\n\n"
        "## 2. [セクション2のタイトル]\n"
        "- [ポイント1]\n"
        "- [ポイント2]\n"
        "..."
    )


def _quiz_template(options: GenerationOptions) -> str:
    return (
        "以下のテキストに基づいて、小テスト問題を作成してください。\n"
        f"{QUIZ_INSTRUCTIONS[options.quiz_type]}\n"
        f"問題数: {options.question_count}問\n\n"
        "{context}\n\n"
        "出力形式:\n"
        "# [タイトル] - 小テスト\n\n"
        "以下の問題に答えなさい。\n\n"
        "## 問1. [問題文]\n"
        f"{QUIZ_CHOICE_SKELETON[options.quiz_type]}\n"
        "## 問2. [問題文]\n"
        "...\n\n"
        "解答:\n"
        "1. [正解]\n"
        "2. [正解]\n"
        "..."
    )


def _assignment_template(options: GenerationOptions) -> str:
    return (
        "以下のテキストに基づいて、学習者が取り組む課題を作成してください。\n"
        "各課題には、目的・取り組み方・評価の観点を含めてください。\n"
        f"課題数: {options.assignment_count}\n\n"
        "{context}\n\n"
        "出力形式:\n"
        "# [タイトル] - 課題\n\n"
        "1. [課題1のタイトル]\n"
        "   - 目的: [目的]\n"
        "   - 取り組み方: [手順]\n"
        "   - 評価の観点: [観点]\n"
        "2. [課題2のタイトル]\n"
        "..."
    )


def _flashcards_template(options: GenerationOptions) -> str:
    return (
        "以下のテキストから暗記用のフラッシュカードを作成してください。\n"
        "表面には用語や問い、裏面には簡潔な答えや説明を書いてください。\n"
        f"カード枚数: {options.card_count}枚\n\n"
        "{context}\n\n"
        "出力形式:\n"
        "# [タイトル] - フラッシュカード\n\n"
        "1. Q：[用語・問い]\n"
        "   A：[答え・説明]\n"
        "2. Q：[用語・問い]\n"
        "   A：[答え・説明]\n"
        "..."
    )


def _generic_template(material_type: MaterialType) -> str:
    return (
        f"以下のテキストから{material_label(material_type)}を作成してください。\n\n"
        "{context}\n\n"
        "教材の内容は元のテキストに基づいて作成し、関係のない内容は含めないでください。"
    )


def build_prompt(text: str, material_type: MaterialType, options: GenerationOptions) -> str:
    """Build the instruction string for one generation call.

    ``text`` is expected to be sampled already. The result depends only on
    the arguments.
    """
    material_type = MaterialType.coerce(material_type)
    base = BASE_INSTRUCTIONS.format(
        difficulty=DIFFICULTY_LABELS[options.difficulty],
        guidance=difficulty_guidance(options.difficulty),
    )
    if material_type is MaterialType.FILL_IN_BLANK:
        template = _fill_in_blank_template(options)
    elif material_type is MaterialType.SUMMARY:
        template = _summary_template(options)
    elif material_type is MaterialType.QUIZ:
        template = _quiz_template(options)
    elif material_type is MaterialType.ASSIGNMENT:
        template = _assignment_template(options)
    elif material_type is MaterialType.FLASHCARDS:
        template = _flashcards_template(options)
    else:
        template = _generic_template(material_type)
    # replace() rather than format(): source text may contain braces
    body = template.replace("{context}", _context_block(text, options))
    return f"{base}\n{body}"


def build_corrective_prompt(prompt: str, reasons: List[str]) -> str:
    """Append the validator's findings to ``prompt`` for the single retry."""
    lines = [
        prompt,
        "",
        "【修正指示】前回の出力は次の点で形式の要件を満たしていませんでした。",
    ]
    lines.extend(f"- {reason}" for reason in reasons)
    lines.append("上記をすべて修正し、出力形式に厳密に従って教材全体を日本語のみで出力し直してください。")
    return "\n".join(lines)
