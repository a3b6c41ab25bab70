"""Prompt templates for post and follow-up email generation."""

from __future__ import annotations

from src.app.content.schemas import ContentLength, ContentTone, SocialPlatform

SYSTEM_PROMPT = (
    "You are an expert social media content creator specializing in financial "
    "advisor content. Your role is to transform meeting transcripts into engaging, "
    "professional social media posts that:\n\n"
    "1. Maintain professional credibility and compliance\n"
    "2. Extract key insights and actionable takeaways\n"
    "3. Use appropriate tone and length for each platform\n"
    "4. Include relevant hashtags without being spammy\n"
    "5. Focus on value-driven content that educates and engages\n\n"
    "Always respond with valid JSON in the exact format requested. Never include "
    "explanations outside the JSON response."
)

# (style, max characters, hashtag guidance)
PLATFORM_GUIDELINES: dict[SocialPlatform, tuple[str, int, str]] = {
    SocialPlatform.LINKEDIN: (
        "Professional, thought-leadership focused", 3000, "3-5 professional hashtags"
    ),
    SocialPlatform.FACEBOOK: ("Conversational, community-focused", 500, "2-3 relevant hashtags"),
    SocialPlatform.TWITTER: ("Concise, engaging, thread-friendly", 280, "1-2 hashtags maximum"),
    SocialPlatform.INSTAGRAM: ("Visual, story-driven", 2200, "5-10 relevant hashtags"),
}

LENGTH_GUIDELINES: dict[ContentLength, str] = {
    ContentLength.SHORT: "50-100 characters",
    ContentLength.MEDIUM: "100-200 characters",
    ContentLength.LONG: "Up to platform maximum",
}

TONE_GUIDELINES: dict[ContentTone, str] = {
    ContentTone.PROFESSIONAL: "Formal, authoritative, industry-focused",
    ContentTone.CASUAL: "Friendly, approachable, conversational",
    ContentTone.ENTHUSIASTIC: "Energetic, motivational, inspiring",
    ContentTone.INFORMATIVE: "Educational, fact-based, helpful",
}


def build_post_prompt(
    transcript: str,
    platform: SocialPlatform,
    tone: ContentTone,
    length: ContentLength,
    include_hashtags: bool,
    include_emojis: bool,
    count: int = 3,
) -> str:
    style, max_chars, hashtag_count = PLATFORM_GUIDELINES[platform]
    hashtags = f"Yes ({hashtag_count})" if include_hashtags else "No"
    emojis = "Yes (use sparingly and professionally)" if include_emojis else "No"
    return f"""Based on the following meeting transcript, generate {count} high-quality social media posts for {platform.value}:

TRANSCRIPT:
{transcript}

REQUIREMENTS:
- Platform: {platform.value}
- Style: {style}
- Tone: {TONE_GUIDELINES[tone]}
- Length: {LENGTH_GUIDELINES[length]}
- Max Characters: {max_chars}
- Include Hashtags: {hashtags}
- Include Emojis: {emojis}

FOCUS ON:
- Key insights from the meeting
- Actionable advice for financial advisors
- Industry trends or observations
- Client success stories (anonymized)
- Educational content that adds value

COMPLIANCE NOTES:
- Ensure all content is compliant with financial industry regulations
- Avoid specific investment advice
- Keep client information anonymous
- Focus on general insights and best practices

RESPONSE FORMAT (JSON only):
{{
  "posts": [
    {{
      "platform": "{platform.value}",
      "content": "The actual post content here...",
      "hashtags": ["hashtag1", "hashtag2"],
      "reasoning": "Brief explanation of why this post works for the platform and audience"
    }}
  ]
}}"""


def build_email_prompt(transcript: str, attendees: list[str], meeting_title: str) -> str:
    return f"""Based on the following meeting transcript, generate a professional follow-up email:

MEETING: {meeting_title}
ATTENDEES: {", ".join(attendees)}

TRANSCRIPT:
{transcript}

Generate a follow-up email that:
1. Summarizes key discussion points
2. Outlines agreed-upon action items
3. Includes next steps and timelines
4. Maintains a professional, helpful tone
5. Is concise but comprehensive

RESPONSE FORMAT (JSON only):
{{
  "email": {{
    "subject": "Follow-up: [Meeting Title]",
    "content": "Email body content here...",
    "actionItems": ["Action item 1", "Action item 2"],
    "nextSteps": "Summary of next steps"
  }}
}}"""
