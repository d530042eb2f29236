from typing import List, Tuple

# Consonant clusters rewritten before generic double-consonant detection.
ROMAJI_COMBINATIONS: List[Tuple[str, str]] = [
    ("ssh", "っsh"),
    ("tch", "っch"),
    ("tt", "っt"),
    ("kk", "っk"),
    ("pp", "っp"),
    ("ss", "っs"),
]

GEMINATE_CONSONANTS = "kstpgdrfbjm"

# Order matters: youon before plain syllables, "nn" before "n".
ROMAJI_TO_HIRAGANA: List[Tuple[str, str]] = [
    # Youon (contracted sounds)
    ("kya", "きゃ"),
    ("kyu", "きゅ"),
    ("kyo", "きょ"),
    ("sha", "しゃ"),
    ("shu", "しゅ"),
    ("sho", "しょ"),
    ("cha", "ちゃ"),
    ("chu", "ちゅ"),
    ("cho", "ちょ"),
    ("nya", "にゃ"),
    ("nyu", "にゅ"),
    ("nyo", "にょ"),
    ("hya", "ひゃ"),
    ("hyu", "ひゅ"),
    ("hyo", "ひょ"),
    ("mya", "みゃ"),
    ("myu", "みゅ"),
    ("myo", "みょ"),
    ("rya", "りゃ"),
    ("ryu", "りゅ"),
    ("ryo", "りょ"),
    ("gya", "ぎゃ"),
    ("gyu", "ぎゅ"),
    ("gyo", "ぎょ"),
    ("ja", "じゃ"),
    ("ju", "じゅ"),
    ("jo", "じょ"),
    ("bya", "びゃ"),
    ("byu", "びゅ"),
    ("byo", "びょ"),
    ("pya", "ぴゃ"),
    ("pyu", "ぴゅ"),
    ("pyo", "ぴょ"),
    # Plain syllables, dakuten and handakuten
    ("ka", "か"),
    ("ki", "き"),
    ("ku", "く"),
    ("ke", "け"),
    ("ko", "こ"),
    ("ga", "が"),
    ("gi", "ぎ"),
    ("gu", "ぐ"),
    ("ge", "げ"),
    ("go", "ご"),
    ("sa", "さ"),
    ("shi", "し"),
    ("su", "す"),
    ("se", "せ"),
    ("so", "そ"),
    ("za", "ざ"),
    ("ji", "じ"),
    ("zu", "ず"),
    ("ze", "ぜ"),
    ("zo", "ぞ"),
    ("ta", "た"),
    ("chi", "ち"),
    ("tsu", "つ"),
    ("te", "て"),
    ("to", "と"),
    ("da", "だ"),
    ("di", "ぢ"),
    ("du", "づ"),
    ("de", "で"),
    ("do", "ど"),
    ("na", "な"),
    ("ni", "に"),
    ("nu", "ぬ"),
    ("ne", "ね"),
    ("no", "の"),
    ("ha", "は"),
    ("hi", "ひ"),
    ("fu", "ふ"),
    ("he", "へ"),
    ("ho", "ほ"),
    ("ba", "ば"),
    ("bi", "び"),
    ("bu", "ぶ"),
    ("be", "べ"),
    ("bo", "ぼ"),
    ("pa", "ぱ"),
    ("pi", "ぴ"),
    ("pu", "ぷ"),
    ("pe", "ぺ"),
    ("po", "ぽ"),
    ("ma", "ま"),
    ("mi", "み"),
    ("mu", "む"),
    ("me", "め"),
    ("mo", "も"),
    ("ya", "や"),
    ("yu", "ゆ"),
    ("yo", "よ"),
    ("ra", "ら"),
    ("ri", "り"),
    ("ru", "る"),
    ("re", "れ"),
    ("ro", "ろ"),
    ("wa", "わ"),
    ("wo", "を"),
    ("nn", "ん"),
    ("n", "ん"),
]

BASIC_VOWELS: List[Tuple[str, str]] = [
    ("a", "あ"),
    ("i", "い"),
    ("u", "う"),
    ("e", "え"),
    ("o", "お"),
]

LONG_VOWELS: List[Tuple[str, str]] = [
    ("ou", "おう"),
    ("oo", "おう"),
    ("ei", "えい"),
]


def _mark_double_consonants(text: str) -> str:
    """Replace each doubled consonant pair with a single っ."""
    chars = list(text)
    i = 0
    while i < len(chars) - 1:
        if chars[i] == chars[i + 1] and chars[i] in GEMINATE_CONSONANTS:
            chars[i] = "っ"
            del chars[i + 1]
        i += 1
    return "".join(chars)


def romaji_to_hiragana(text: str) -> str:
    """
    Convert romanized Japanese into hiragana.

    This is a best-effort helper used to accept readings typed in romaji.
    Every step is a plain substring replacement over the output of the
    previous one, in this order:

      1. lower-case the input
      2. ``n'`` -> ん
      3. consonant clusters (``tch``, ``ssh``, ``tt`` ...) -> っ + remainder
      4. any other doubled consonant from ``kstpgdrfbjm`` -> っ
      5. ``nb`` -> ``mb`` and ``np`` -> ``mp``
      6. the syllable table, youon first
      7. bare vowels
      8. long vowels (``ou``, ``oo``, ``ei``)

    Characters that match nothing are passed through unchanged, so the
    function never fails and leaves text that is already kana alone.
    """
    result = text.lower()
    result = result.replace("n'", "ん")

    for romaji, replacement in ROMAJI_COMBINATIONS:
        result = result.replace(romaji, replacement)

    result = _mark_double_consonants(result)

    result = result.replace("nb", "mb")
    result = result.replace("np", "mp")

    for romaji, kana in ROMAJI_TO_HIRAGANA:
        result = result.replace(romaji, kana)

    for romaji, kana in BASIC_VOWELS:
        result = result.replace(romaji, kana)

    for romaji, kana in LONG_VOWELS:
        result = result.replace(romaji, kana)

    return result
