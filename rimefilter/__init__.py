"""rime-filter - trim a Rime dictionary to the glyphs of a font.

Core concepts:
    - A font face maps code points to glyphs through its ``cmap`` table
    - Those code points form the character whitelist
    - Dictionary entries whose key is outside the whitelist are removed
      and reported

Usage:
    from rimefilter.extract import FontToolsSource
    from rimefilter.glyphs import build_character_set
    from rimefilter.dict_filter import filter_dictionary

    records = FontToolsSource().records(Path("font.ttc"), 0)
    charset = build_character_set(records)
    result = filter_dictionary(
        Path("quick5.dict.yaml"),
        Path("filtered_dict.yaml"),
        Path("missing_chars.txt"),
        charset.contains,
        cache_size=1000,
    )
"""

__version__ = "0.1.0"
