"""ビルド時に固定されるバージョン文字列。"""

VERSION = "0.3.0"
