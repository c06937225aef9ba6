"""
起名提示词构建
"""
from typing import Optional

from babyname.schemas.name import BabyInfo

GENDER_LABELS = {
    "male": "男孩",
    "female": "女孩",
    "unknown": "未知",
}

NAME_PROMPT_TEMPLATE = """角色设定：你是一位拥有20年经验的起名大师，精通周易五行、古诗词、现代美学。
任务：根据用户提供的宝宝信息，生成{name_count}个精选名字。要求：名字风格多样化，字数包含2个字和3个字的名字。
输入信息：
- 姓氏：{surname}
- 性别：{gender}
- 出生日期：{birth_date}
- 出生时间：{birth_time}
- 特殊要求：{requirements}

起名标准：
1. 寓意美好：名字要有积极的寓意和内涵
2. 音律和谐：声调搭配，朗朗上口，无不良谐音
3. 字形美观：结构匀称，书写流畅
4. 文化底蕴：优先从诗词典故中取材
5. 时代感：既要有传统底蕴，又要符合现代审美
6. 避免生僻：使用GB2312常用字，方便生活
7. 风格多样：包含古典诗词风、现代简约风、国学经典风、文艺清新风、寓意吉祥风等不同风格

输出要求：严格按以下JSON格式输出，不要任何额外文字：

{{
  "names": [
    {{
      "id": "唯一标识符",
      "name": "名字（不含姓氏，可以是1-2个字）",
      "full_name": "完整姓名",
      "pinyin": "拼音标注",
      "meaning": "详细寓意解释(100字以内)",
      "cultural_source": "诗词典故出处(如有，没有则写'无')",
      "wuxing_analysis": "五行分析(如提供出生时间)",
      "score": 95,
      "highlight": "最突出的亮点(一句话)"
    }}
  ]
}}

注意事项：
- 不要输出JSON以外的任何内容
- 确保{name_count}个名字风格各异，给用户更多选择
- 评分要客观，90分以上为优质
- 如果用户提供了特殊要求，必须优先满足"""

# 可选字段为空时整行删除
_OPTIONAL_LINES = {
    "birth_date": "- 出生日期：{birth_date}\n",
    "birth_time": "- 出生时间：{birth_time}\n",
    "requirements": "- 特殊要求：{requirements}\n",
}


def build_name_prompt(
    params: BabyInfo,
    name_count: int = 5,
    template: Optional[str] = None,
) -> str:
    """根据宝宝信息填充提示词模板"""
    template = template or NAME_PROMPT_TEMPLATE
    values = {
        "surname": params.surname,
        "gender": GENDER_LABELS.get(params.gender, params.gender),
        "name_count": name_count,
    }
    for field_name, line in _OPTIONAL_LINES.items():
        value = getattr(params, field_name)
        if value:
            values[field_name] = value
        else:
            template = template.replace(line, "")
    return template.format(**values)
